"""
Session setup: validates raw setup input and wires the interview components.
"""
import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from pydantic import ValidationError

from .analysis import AnalysisPipeline
from .events import InterviewEventBus
from .models import AnswerSegment, InterviewSession, OutcomeKind, SessionOutcome, Voice
from .schemas import InterviewConfig
from .services import (
    QuestionGenerator, SpeechSynthesizer, InterviewTranscriber, ContentAnalyzer,
    GeminiQuestionGenerator, GeminiSpeechSynthesizer, GoogleCloudSpeechSynthesizer,
    GeminiInterviewTranscriber, GeminiContentAnalyzer
)
from .state_machine import TurnStateMachine
from ..config import Config, PREFETCH_LOOKAHEAD, FIRST_QUESTION_AUDIO_TIMEOUT, TURN_AUDIO_TIMEOUT
from ..infrastructure.audio import AudioDevice, PyAudioDevice
from ..infrastructure.data import ProfileStore, JsonProfileStore, SessionWorkspace
from ..infrastructure.llm import VertexRestClient

logger = logging.getLogger("session_setup")

__all__ = ["SetupError", "SessionConfigResolver", "InterviewSessionRunner"]


class SetupError(ValueError):
    """Invalid or missing interview setup. Raised before anything is prepared."""


class SessionConfigResolver:
    """Turns raw form/CLI input into a validated InterviewConfig."""

    FIELDS = ("role", "company", "job_description", "duration_minutes",
              "context", "voice", "candidate_name")

    def resolve(self, raw: Mapping[str, Any]) -> InterviewConfig:
        """
        Validate setup input.

        Strings are trimmed and blank values treated as not given. Voice names
        are matched case-insensitively.

        Raises:
            SetupError: With a human-readable message describing every problem
        """
        values: Dict[str, Any] = {}
        for key in self.FIELDS:
            value = raw.get(key)
            if isinstance(value, str):
                value = value.strip()
                if not value:
                    value = None
            if value is not None:
                values[key] = value

        if "role" not in values:
            raise SetupError("A role is required to set up an interview")

        voice = values.get("voice")
        if isinstance(voice, str):
            matches = [v for v in Voice if v.value.lower() == voice.lower()]
            if not matches:
                raise SetupError(f"Unknown voice '{voice}' (choose {' or '.join(v.value for v in Voice)})")
            values["voice"] = matches[0]

        try:
            config = InterviewConfig(**values)
        except ValidationError as e:
            raise SetupError(self._describe(e)) from e
        logger.info(f"Resolved setup: role='{config.role}' duration={config.duration_minutes}m "
                    f"questions={config.question_count}")
        return config

    @staticmethod
    def _describe(error: ValidationError) -> str:
        problems = []
        for item in error.errors():
            field = ".".join(str(part) for part in item.get("loc", ())) or "input"
            problems.append(f"{field}: {item.get('msg', 'invalid value')}")
        return "Invalid interview setup: " + "; ".join(problems)


class InterviewSessionRunner:
    """
    Glue between setup, the live interview and the analysis afterwards.

    Answers of a completed interview are written to the session workspace
    before analysis starts, so ``resume_analysis`` can pick up after a restart.
    """

    def __init__(self,
                 question_generator: QuestionGenerator,
                 synthesizer: SpeechSynthesizer,
                 device: AudioDevice,
                 store: ProfileStore,
                 transcriber: InterviewTranscriber,
                 content_analyzer: ContentAnalyzer,
                 workdir: str,
                 event_bus: Optional[InterviewEventBus] = None,
                 lookahead: int = PREFETCH_LOOKAHEAD,
                 first_audio_timeout: float = FIRST_QUESTION_AUDIO_TIMEOUT,
                 turn_audio_timeout: Optional[float] = TURN_AUDIO_TIMEOUT):
        self.question_generator = question_generator
        self.synthesizer = synthesizer
        self.device = device
        self.store = store
        self.workdir = workdir
        self.event_bus = event_bus or InterviewEventBus()
        self.lookahead = lookahead
        self.first_audio_timeout = first_audio_timeout
        self.turn_audio_timeout = turn_audio_timeout
        self.resolver = SessionConfigResolver()
        self.pipeline = AnalysisPipeline(store, transcriber, content_analyzer, self.event_bus)
        self.machine: Optional[TurnStateMachine] = None

    @classmethod
    def from_config(cls, config: Config, device: Optional[AudioDevice] = None,
                    event_bus: Optional[InterviewEventBus] = None) -> "InterviewSessionRunner":
        """Build a runner on Vertex AI collaborators, a PyAudio device and the JSON store."""
        client = VertexRestClient(
            project=config.google_cloud_project,
            location=config.vertex_location,
            model=config.question_model,
            credentials_json=config.google_application_credentials,
        )
        if config.tts_backend == "google_cloud":
            synthesizer: SpeechSynthesizer = GoogleCloudSpeechSynthesizer()
        else:
            synthesizer = GeminiSpeechSynthesizer(client, model=config.tts_model)

        return cls(
            question_generator=GeminiQuestionGenerator(client, model=config.question_model),
            synthesizer=synthesizer,
            device=device or PyAudioDevice(),
            store=JsonProfileStore(config.profile_store_path),
            transcriber=GeminiInterviewTranscriber(client, model=config.transcription_model),
            content_analyzer=GeminiContentAnalyzer(client, model=config.content_model),
            workdir=config.workdir,
            event_bus=event_bus,
            lookahead=config.prefetch_lookahead,
            first_audio_timeout=config.first_question_audio_timeout,
            turn_audio_timeout=config.turn_audio_timeout,
        )

    def create_machine(self, raw: Mapping[str, Any]) -> TurnStateMachine:
        """Validate setup input and build a state machine for it. Raises SetupError."""
        config = self.resolver.resolve(raw)
        self.machine = TurnStateMachine(
            config,
            self.question_generator,
            self.synthesizer,
            self.device,
            store=self.store,
            event_bus=self.event_bus,
            lookahead=self.lookahead,
            first_audio_timeout=self.first_audio_timeout,
            turn_audio_timeout=self.turn_audio_timeout,
        )
        return self.machine

    async def start_session(self, raw: Mapping[str, Any]) -> TurnStateMachine:
        """
        Validate input, then prepare the interview.

        The returned machine is either ``interviewing`` or in
        ``initialization_error`` (retry with ``machine.prepare()``).
        """
        machine = self.create_machine(raw)
        await machine.prepare()
        return machine

    async def analyze(self, outcome: SessionOutcome) -> Optional[InterviewSession]:
        """Save the answers of a completed interview and run the analysis on them."""
        if outcome.kind is not OutcomeKind.COMPLETED or outcome.session is None:
            logger.info(f"Nothing to analyze for outcome '{outcome.kind.value}'")
            return None
        workspace = SessionWorkspace(self.workdir, outcome.session.id)
        try:
            workspace.save_segments(outcome.segments)
        except OSError as e:
            logger.error(f"Could not save answers for session {outcome.session.id}: {e}")
        return await self.pipeline.run(outcome.session.id, outcome.segments)

    async def resume_analysis(self, session_id: str,
                              segments: Optional[Sequence[AnswerSegment]] = None) -> InterviewSession:
        """Continue analysis of a stored session, reading answers from its workspace."""
        if segments is None:
            segments = SessionWorkspace(self.workdir, session_id).load_segments()
        return await self.pipeline.run(session_id, segments)
