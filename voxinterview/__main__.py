#!/usr/bin/env python3
"""
Main entry point for the voxinterview mock interview system.
Allows running the package with: python -m voxinterview --role="Backend Engineer"
"""
import sys
import asyncio
import logging
from typing import Any, Dict, Optional

from .config import get_config, DEFAULT_DURATION_MINUTES, DEFAULT_VOICE
from .utils import setup_logging
from .interview import (
    InterviewSessionRunner, InterviewEventBus, EventLogger, InterviewMetrics,
    EventType, InterviewEvent, SessionPhase, OutcomeKind, SetupError, InterviewSession
)
from .infrastructure.data import SessionNotFoundError

logger = logging.getLogger("main")

USAGE = """Usage: python -m voxinterview --role="Backend Engineer" [options]

  --role=TEXT          Role you are interviewing for (required)
  --company=TEXT       Company name
  --duration=MINUTES   Interview length, 1-60 (default {duration})
  --context=TEXT       Extra context for the interviewer
  --jd-file=PATH       Read the job description from a file
  --name=TEXT          Your name
  --voice=male|female  Interviewer voice (default {voice})
  --no-analysis        Skip the analysis after the interview
  --analyze=ID         Resume analysis of a stored session
  --list               List stored sessions

During the interview: Enter finishes your answer, q + Enter ends early, Ctrl-C abandons.
""".format(duration=DEFAULT_DURATION_MINUTES, voice=DEFAULT_VOICE.lower())


def parse_args(argv) -> Dict[str, Any]:
    """Parse ``--key=value`` flags the way the interview CLI expects them."""
    options: Dict[str, Any] = {"raw": {}, "analysis": True, "analyze": None, "list": False}
    raw = options["raw"]
    mapping = {
        "--role=": "role",
        "--company=": "company",
        "--duration=": "duration_minutes",
        "--context=": "context",
        "--name=": "candidate_name",
        "--voice=": "voice",
    }
    for arg in argv:
        prefix = next((p for p in mapping if arg.startswith(p)), None)
        if prefix:
            raw[mapping[prefix]] = arg[len(prefix):]
        elif arg.startswith("--jd-file="):
            path = arg.split("=", 1)[1]
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    raw["job_description"] = f.read()
            except OSError as e:
                raise SetupError(f"Could not read job description file {path}: {e}") from e
        elif arg == "--no-analysis":
            options["analysis"] = False
        elif arg.startswith("--analyze="):
            options["analyze"] = arg.split("=", 1)[1]
        elif arg == "--list":
            options["list"] = True
        elif arg in ("-h", "--help"):
            options["help"] = True
        else:
            raise SetupError(f"Unknown option: {arg}")
    return options


async def read_line(prompt: str) -> str:
    """Read one line from stdin without blocking the event loop."""
    print(prompt, end="", flush=True)
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def on_readable():
        if not future.done():
            future.set_result(sys.stdin.readline())

    loop.add_reader(sys.stdin.fileno(), on_readable)
    try:
        return await future
    finally:
        loop.remove_reader(sys.stdin.fileno())


def print_event(event: InterviewEvent) -> None:
    """Terminal rendering of interview events."""
    data = event.data
    if event.event_type == EventType.QUESTION_STARTED:
        print(f"\n🤖 Question {data['question_index'] + 1}/{data['question_count']}: {data['question']}")
    elif event.event_type == EventType.AUDIO_FALLBACK:
        print("⚠️  Couldn't play the question audio, please read it above")
    elif event.event_type == EventType.ANSWER_RECORDED and data["empty"]:
        print("⚠️  No audio was recorded for this answer")
    elif event.event_type == EventType.STAGE_STATUS_CHANGED:
        icons = {"loading": "⏳", "success": "✅", "error": "❌"}
        icon = icons.get(data["status"])
        if icon:
            line = f"{icon} {data['stage'].capitalize()}: {data['status']}"
            if data.get("error"):
                line += f" ({data['error']})"
            print(line)


async def run_interview(runner: InterviewSessionRunner, raw: Dict[str, Any], analyze: bool) -> int:
    machine = runner.create_machine(raw)
    print(f"🧠 Preparing a {machine.config.duration_minutes} minute interview for {machine.config.role}...")

    try:
        while not await machine.prepare():
            if machine.phase is SessionPhase.ABANDONED:
                return 1
            print(f"❌ {machine.error_message}")
            answer = (await read_line("🔁 Retry? [y/N] ")).strip().lower()
            if answer != "y":
                await machine.abandon()
                print("👋 Interview abandoned")
                return 1

        print(f"🎙️  {len(machine.questions)} questions. Enter finishes an answer, q ends early.")
        while machine.phase is SessionPhase.INTERVIEWING:
            await machine.wait_for_turn()
            if machine.phase is not SessionPhase.INTERVIEWING:
                break
            line = await read_line("🎧 Recording... press Enter when done: ")
            if line.strip().lower() == "q":
                await machine.end_interview()
                break
            await machine.finish_answer()
    except asyncio.CancelledError:
        await machine.abandon()
        print("\n🛑 Interview abandoned, nothing was saved")
        raise

    outcome = machine.outcome
    if outcome is None or outcome.kind is not OutcomeKind.COMPLETED:
        return 1

    session = outcome.session
    print(f"\n🎉 Interview complete: {session.question_count} questions in {session.duration_seconds}s")
    print(f"   Session id: {session.id}")
    if not analyze:
        print(f"   Run later with: python -m voxinterview --analyze={session.id}")
        return 0

    print("\n🔍 Analyzing your interview...")
    analyzed = await runner.analyze(outcome)
    print_results(analyzed)
    return 0 if runner.pipeline.is_complete else 2


async def resume_analysis(runner: InterviewSessionRunner, session_id: str) -> int:
    print(f"🔍 Resuming analysis for session {session_id}...")
    try:
        session = await runner.resume_analysis(session_id)
    except SessionNotFoundError as e:
        print(f"❌ {e}")
        return 1
    print_results(session)
    return 0 if runner.pipeline.is_complete else 2


def print_results(session: Optional[InterviewSession]) -> None:
    if session is None:
        return
    if session.audio_analysis:
        audio = session.audio_analysis
        print(f"\n🗣️  Delivery: confidence {audio.confidence_score:.0f}/100, clarity {audio.clarity_score:.0f}/100")
        print(f"   Pace: {audio.pace} | Tone: {audio.tone}")
        print(f"   {audio.feedback}")
    if session.content_analysis:
        content = session.content_analysis
        print(f"\n📊 Content score: {content.overall_score:.0f}/100")
        for strength in content.strengths:
            print(f"   👍 {strength}")
        for improvement in content.improvements:
            print(f"   🔧 {improvement}")
        for i, item in enumerate(content.question_feedback, 1):
            print(f"\n   Q{i}: {item.question}")
            print(f"   💬 \"{item.user_answer}\"")
            print(f"   ⭐ {item.score:.0f}/100 - {item.feedback}")
            print(f"   💡 {item.improved_answer}")
    if session.content_analysis is None:
        print(f"\n⚠️  Analysis incomplete. Retry with: python -m voxinterview --analyze={session.id}")


def list_sessions(runner: InterviewSessionRunner) -> int:
    sessions = runner.store.list_sessions()
    if not sessions:
        print("📭 No stored sessions")
        return 0
    for s in sessions:
        score = f"{s.content_analysis.overall_score:.0f}/100" if s.content_analysis else "not analyzed"
        print(f"📁 {s.id}  {s.date[:16]}  {s.role} @ {s.company}  {s.question_count}q  {score}")
    return 0


def main():
    """Command-line interface for the interview system."""
    try:
        options = parse_args(sys.argv[1:])
    except SetupError as e:
        print(f"❌ {e}")
        print(USAGE)
        sys.exit(1)
    if options.get("help"):
        print(USAGE)
        return

    # Load configuration from environment
    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    log_file = setup_logging(config.log_file, config.log_level)
    print(f"📝 Logging to {log_file}")

    event_bus = InterviewEventBus()
    event_logger = EventLogger()
    metrics = InterviewMetrics()
    event_bus.subscribe_all(event_logger.handle_event)
    event_bus.subscribe_all(metrics.handle_event)
    event_bus.subscribe_all(print_event)

    runner = InterviewSessionRunner.from_config(config, event_bus=event_bus)

    if options["list"]:
        sys.exit(list_sessions(runner))

    try:
        if options["analyze"]:
            code = asyncio.run(resume_analysis(runner, options["analyze"]))
        else:
            code = asyncio.run(run_interview(runner, options["raw"], options["analysis"]))
    except SetupError as e:
        print(f"❌ {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        code = 130
    finally:
        logger.info(f"Session metrics: {metrics.get_metrics()}")
    sys.exit(code)


if __name__ == "__main__":
    main()
