import pytest

from voxinterview.interview import (
    AnalysisPipeline, AnalysisStage, StageStatus, EventType, Speaker, build_answer_pairs
)
from voxinterview.interview.testing import (
    MockTranscriber, MockContentAnalyzer, create_test_session, tone_pcm16
)
from voxinterview.interview.models import AnswerSegment
from voxinterview.infrastructure.data import SessionNotFoundError


@pytest.fixture
def segments(questions):
    return [AnswerSegment(question_index=i, audio=tone_pcm16(0.05), sample_rate=16000)
            for i in range(len(questions))]


def test_build_answer_pairs_marks_missing_and_empty_answers(questions):
    segments = [
        AnswerSegment(question_index=0, audio=tone_pcm16(0.05), sample_rate=16000),
        AnswerSegment(question_index=1, audio=b"", sample_rate=16000),
    ]

    pairs = build_answer_pairs(questions, segments)

    assert [q for q, _ in pairs] == list(questions)
    assert pairs[0][1] is segments[0]
    assert pairs[1][1] is None
    assert pairs[2][1] is None


@pytest.mark.asyncio
async def test_run_fills_both_stages(store, stored_session, transcriber, content_analyzer,
                                     event_bus, segments):
    pipeline = AnalysisPipeline(store, transcriber, content_analyzer, event_bus)

    session = await pipeline.run("session-1", segments)

    assert pipeline.is_complete
    assert session.transcript[0].speaker is Speaker.AI
    assert session.transcript[1].text == "Mock answer 1."
    assert session.audio_analysis.confidence_score == 78.0
    assert session.content_analysis.overall_score == 72.0
    stored = store.get("session-1")
    assert stored.transcript == session.transcript
    assert stored.content_analysis == session.content_analysis
    statuses = [(e.data["stage"], e.data["status"])
                for e in event_bus.of_type(EventType.STAGE_STATUS_CHANGED)]
    assert statuses == [
        ("transcription", "loading"), ("transcription", "success"),
        ("content", "loading"), ("content", "success"),
    ]


@pytest.mark.asyncio
async def test_run_is_idempotent(store, stored_session, transcriber, content_analyzer, segments):
    pipeline = AnalysisPipeline(store, transcriber, content_analyzer)
    await pipeline.run("session-1", segments)
    upserts = store.upsert_count

    session = await pipeline.run("session-1", segments)

    assert len(transcriber.calls) == 1
    assert len(content_analyzer.calls) == 1
    assert store.upsert_count == upserts
    assert pipeline.is_complete
    assert session.content_analysis is not None


@pytest.mark.asyncio
async def test_no_recorded_answers_leaves_transcription_open(store, stored_session, content_analyzer,
                                                            event_bus, segments):
    transcriber = MockTranscriber()
    pipeline = AnalysisPipeline(store, transcriber, content_analyzer, event_bus)

    session = await pipeline.run("session-1", segments=None)

    assert transcriber.calls == []
    assert session.transcript is None
    assert pipeline.status[AnalysisStage.TRANSCRIPTION] is StageStatus.ERROR
    assert pipeline.status[AnalysisStage.CONTENT] is StageStatus.PENDING
    assert "recorded answers" in pipeline.errors[AnalysisStage.TRANSCRIPTION]
    assert store.get("session-1").transcript is None
    assert store.upsert_count == 1

    session = await pipeline.run("session-1", segments)

    assert len(transcriber.calls) == 1
    assert pipeline.is_complete
    assert session.transcript is not None


@pytest.mark.asyncio
async def test_all_empty_answers_are_not_transcribed_on_retry(store, stored_session, content_analyzer):
    transcriber = MockTranscriber()
    pipeline = AnalysisPipeline(store, transcriber, content_analyzer)
    silent = [AnswerSegment(question_index=i, audio=b"", sample_rate=16000) for i in range(3)]

    await pipeline.retry(AnalysisStage.TRANSCRIPTION, "session-1", silent)

    assert transcriber.calls == []
    assert pipeline.status[AnalysisStage.TRANSCRIPTION] is StageStatus.ERROR
    assert content_analyzer.calls == []


@pytest.mark.asyncio
async def test_content_failure_keeps_transcript_and_retry_only_runs_content(
        store, stored_session, event_bus, segments):
    transcriber = MockTranscriber()
    analyzer = MockContentAnalyzer(fail_times=1)
    pipeline = AnalysisPipeline(store, transcriber, analyzer, event_bus)

    session = await pipeline.run("session-1", segments)

    assert pipeline.status[AnalysisStage.TRANSCRIPTION] is StageStatus.SUCCESS
    assert pipeline.status[AnalysisStage.CONTENT] is StageStatus.ERROR
    assert pipeline.has_error
    assert "Mock content analysis failure" in pipeline.errors[AnalysisStage.CONTENT]
    assert session.transcript is not None
    assert store.get("session-1").transcript is not None
    assert store.get("session-1").content_analysis is None
    assert event_bus.of_type(EventType.ERROR_OCCURRED)[0].data["component"] == "analysis"

    session = await pipeline.retry(AnalysisStage.CONTENT, "session-1")

    assert len(transcriber.calls) == 1
    assert len(analyzer.calls) == 2
    assert pipeline.is_complete
    assert pipeline.errors == {}
    assert session.content_analysis.overall_score == 72.0
    assert store.get("session-1").transcript == session.transcript


@pytest.mark.asyncio
async def test_transcription_failure_skips_content_until_retried(store, stored_session,
                                                                content_analyzer, segments):
    transcriber = MockTranscriber(fail_times=1)
    pipeline = AnalysisPipeline(store, transcriber, content_analyzer)

    session = await pipeline.run("session-1", segments)

    assert session.transcript is None
    assert pipeline.status[AnalysisStage.TRANSCRIPTION] is StageStatus.ERROR
    assert pipeline.status[AnalysisStage.CONTENT] is StageStatus.PENDING
    assert content_analyzer.calls == []

    session = await pipeline.retry("transcription", "session-1", segments)

    assert pipeline.is_complete
    assert len(transcriber.calls) == 2
    assert len(content_analyzer.calls) == 1
    assert session.content_analysis is not None


@pytest.mark.asyncio
async def test_retry_content_without_transcript_is_an_error(store, stored_session,
                                                            transcriber, content_analyzer):
    pipeline = AnalysisPipeline(store, transcriber, content_analyzer)

    await pipeline.retry(AnalysisStage.CONTENT, "session-1")

    assert pipeline.status[AnalysisStage.CONTENT] is StageStatus.ERROR
    assert "transcript" in pipeline.errors[AnalysisStage.CONTENT]
    assert content_analyzer.calls == []


@pytest.mark.asyncio
async def test_resume_with_existing_transcript_skips_transcription(store, stored_session,
                                                                  content_analyzer, segments):
    await AnalysisPipeline(store, MockTranscriber(), MockContentAnalyzer(fail_times=1)).run(
        "session-1", segments)
    transcriber = MockTranscriber()
    pipeline = AnalysisPipeline(store, transcriber, content_analyzer)

    session = await pipeline.run("session-1")

    assert transcriber.calls == []
    assert len(content_analyzer.calls) == 1
    assert pipeline.is_complete
    assert session.content_analysis is not None


@pytest.mark.asyncio
async def test_unknown_session_raises(store, transcriber, content_analyzer):
    pipeline = AnalysisPipeline(store, transcriber, content_analyzer)

    with pytest.raises(SessionNotFoundError):
        await pipeline.run("missing")
    with pytest.raises(SessionNotFoundError):
        await pipeline.retry(AnalysisStage.CONTENT, "missing")


@pytest.mark.asyncio
async def test_switching_sessions_resets_status(store, stored_session, transcriber,
                                                content_analyzer, segments):
    store.upsert(create_test_session("session-2"))
    pipeline = AnalysisPipeline(store, MockTranscriber(fail_times=1), content_analyzer)
    await pipeline.run("session-1", segments)
    assert pipeline.has_error

    await pipeline.run("session-2", segments)

    assert pipeline.session_id == "session-2"
    assert pipeline.is_complete
    assert pipeline.errors == {}


@pytest.mark.asyncio
async def test_stage_results_do_not_touch_other_sessions(store, stored_session, transcriber,
                                                         content_analyzer, segments):
    other = create_test_session("session-2")
    store.upsert(other)

    await AnalysisPipeline(store, transcriber, content_analyzer).run("session-1", segments)

    assert store.get("session-2").to_dict() == other.to_dict()
