"""
Turn-taking state machine for one spoken interview.

The machine owns the audio device for the lifetime of a session: it plays
each question, hands the floor to the candidate, records the answer and
advances. Playback and capture are never active at the same time.
"""
import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .audio_cache import AudioCache
from .events import (
    InterviewEventBus, InterviewEvent, SessionPhaseChangedEvent, TurnStateChangedEvent,
    QuestionStartedEvent, AudioFallbackEvent, InitializationFailedEvent,
    SessionCompletedEvent, SessionAbandonedEvent, ErrorOccurredEvent
)
from .models import (
    AnswerSegment, InterviewSession, InterviewType, OutcomeKind, QuestionSet,
    SessionOutcome, SessionPhase, TurnState
)
from .recording import RecordingManager
from .schemas import InterviewConfig, build_question_request
from .services import QuestionGenerator, SpeechSynthesizer
from ..config import PREFETCH_LOOKAHEAD, FIRST_QUESTION_AUDIO_TIMEOUT, TURN_AUDIO_TIMEOUT
from ..infrastructure.audio import AudioBuffer, AudioDevice
from ..infrastructure.data import ProfileStore

logger = logging.getLogger("state_machine")


class TurnStateMachine:
    """
    Drives setup -> preparing -> interviewing -> completed.

    ``initialization_error`` is reachable only from ``preparing``; from there
    the session can be prepared again or abandoned. ``abandoned`` is
    reachable from every non-terminal phase and persists nothing.
    """

    def __init__(self,
                 config: InterviewConfig,
                 question_generator: QuestionGenerator,
                 synthesizer: SpeechSynthesizer,
                 device: AudioDevice,
                 store: Optional[ProfileStore] = None,
                 event_bus: Optional[InterviewEventBus] = None,
                 lookahead: int = PREFETCH_LOOKAHEAD,
                 first_audio_timeout: float = FIRST_QUESTION_AUDIO_TIMEOUT,
                 turn_audio_timeout: Optional[float] = TURN_AUDIO_TIMEOUT,
                 clock: Callable[[], float] = time.monotonic,
                 session_id: Optional[str] = None):
        self.config = config
        self.question_generator = question_generator
        self.synthesizer = synthesizer
        self.device = device
        self.store = store
        self.event_bus = event_bus
        self.lookahead = lookahead
        self.first_audio_timeout = first_audio_timeout
        self.turn_audio_timeout = turn_audio_timeout
        self.clock = clock
        self.session_id = session_id or str(uuid.uuid4())

        self.recorder = RecordingManager(device, event_bus, self.session_id)
        self._phase = SessionPhase.SETUP
        self._turn: Optional[TurnState] = None
        self._index = 0
        self._question_set: Optional[QuestionSet] = None
        self._cache: Optional[AudioCache] = None
        self._turn_task: Optional[asyncio.Task] = None
        self._interrupted_index: Optional[int] = None
        self._prepare_task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._finished = asyncio.Event()
        self._started_clock: Optional[float] = None
        self._started_at: Optional[datetime] = None
        self._outcome: Optional[SessionOutcome] = None
        self._error_message: Optional[str] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def turn(self) -> Optional[TurnState]:
        return self._turn

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def questions(self) -> Tuple[str, ...]:
        return self._question_set.questions if self._question_set else ()

    @property
    def interview_type(self) -> InterviewType:
        return self._question_set.interview_type if self._question_set else InterviewType.MIXED

    @property
    def segments(self) -> List[AnswerSegment]:
        return self.recorder.segments

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        return self._outcome

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def cache(self) -> Optional[AudioCache]:
        return self._cache

    @property
    def elapsed_seconds(self) -> float:
        if self._started_clock is None:
            return 0.0
        return self.clock() - self._started_clock

    # ------------------------------------------------------------------
    # Preparing
    # ------------------------------------------------------------------

    async def prepare(self) -> bool:
        """
        Acquire the device, generate questions and resolve the first question's audio.

        Returns True once the first turn has started. On failure the phase is
        ``initialization_error`` and ``error_message`` says why; calling
        ``prepare()`` again retries from scratch.
        """
        if self._phase not in (SessionPhase.SETUP, SessionPhase.INITIALIZATION_ERROR):
            raise RuntimeError(f"Cannot prepare an interview in phase '{self._phase.value}'")

        task = asyncio.ensure_future(self._prepare())
        self._prepare_task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            self._prepare_task = None

        if task.cancelled():
            logger.info("Preparation cancelled")
            return False
        return task.result()

    async def _prepare(self) -> bool:
        self._reset_attempt()
        self._set_phase(SessionPhase.PREPARING)

        try:
            self.device.acquire()
        except Exception as e:
            return self._fail_initialization(f"Could not access the microphone or speaker: {e}")

        try:
            question_set = await self.question_generator.generate(build_question_request(self.config))
        except Exception as e:
            return self._fail_initialization(f"Failed to generate interview questions: {e}")
        if not question_set.questions:
            return self._fail_initialization("Question generation returned no questions")

        self._question_set = question_set
        self._cache = AudioCache(self.synthesizer, self.config.voice)
        logger.info(f"Prepared {len(question_set)} {question_set.interview_type.value} questions")

        try:
            await asyncio.wait_for(self._cache.ensure(0, question_set.questions[0]),
                                   self.first_audio_timeout)
        except asyncio.TimeoutError:
            return self._fail_initialization(
                f"Timed out after {self.first_audio_timeout:.0f}s preparing audio for the first question"
            )
        except Exception as e:
            # Retried lazily on the first turn, which degrades if it fails again
            logger.warning(f"Audio for the first question failed: {e}")

        self._cache.prefetch_ahead(0, question_set.questions, self.lookahead)
        self._started_clock = self.clock()
        self._started_at = datetime.now()
        self._set_phase(SessionPhase.INTERVIEWING)
        self._start_turn(0)
        return True

    def _reset_attempt(self) -> None:
        self._index = 0
        self._turn = None
        self._interrupted_index = None
        self._question_set = None
        self._cache = None
        self._outcome = None
        self._error_message = None
        self._started_clock = None
        self._started_at = None
        self.recorder.reset()

    def _fail_initialization(self, message: str) -> bool:
        logger.error(f"Initialization failed: {message}")
        self._error_message = message
        self._teardown()
        self._outcome = SessionOutcome(kind=OutcomeKind.INITIALIZATION_ERROR, message=message)
        self._set_phase(SessionPhase.INITIALIZATION_ERROR)
        self._emit(InitializationFailedEvent(self.session_id, message))
        return False

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def _start_turn(self, index: int) -> None:
        self._interrupted_index = None
        self._turn_task = asyncio.ensure_future(self._ask(index))

    async def _ask(self, index: int) -> None:
        question = self.questions[index]
        self._set_turn(TurnState.AI_SPEAKING)
        self._emit(QuestionStartedEvent(self.session_id, index, question, len(self.questions)))
        self._cache.prefetch_ahead(index, self.questions, self.lookahead)

        try:
            buffer = await self._resolve_audio(index, question)
            if self._interrupted_index != index:
                await self.device.play(buffer)
        except Exception as e:
            logger.warning(f"Could not play question {index}, handing over without audio: {e}")
            self._emit(AudioFallbackEvent(self.session_id, index, str(e)))

        # A cancel that lands as playback returns can be lost
        if self._interrupted_index == index:
            return
        if self._phase is not SessionPhase.INTERVIEWING or self._index != index:
            return
        self._set_turn(TurnState.USER_SPEAKING)
        self.recorder.start()

    async def _resolve_audio(self, index: int, question: str) -> AudioBuffer:
        fetch = self._cache.ensure(index, question)
        if self.turn_audio_timeout is None:
            return await fetch
        return await asyncio.wait_for(fetch, self.turn_audio_timeout)

    async def _interrupt_turn(self) -> None:
        task = self._turn_task
        self._turn_task = None
        self._interrupted_index = self._index
        self.device.stop_playback()
        if task is not None and not task.done():
            logger.debug(f"Interrupting turn for question {self._index}")
            task.cancel()
            await asyncio.wait({task})

    async def wait_for_turn(self) -> None:
        """Wait until the running interviewer turn handed the floor to the candidate."""
        task = self._turn_task
        if task is not None:
            await asyncio.wait({task})

    async def finish_answer(self, index: Optional[int] = None) -> Optional[AnswerSegment]:
        """
        Store the answer to the current question and move on.

        Args:
            index: Question the trigger refers to. Defaults to the current one;
                a trigger for a question that was already finished is ignored.

        Returns the stored segment, or None when nothing was finished (outside
        ``interviewing``, or a duplicate trigger for an answer already stored).
        """
        if self._phase is not SessionPhase.INTERVIEWING:
            return None
        if index is None:
            index = self._index

        async with self._lock:
            if self._phase is not SessionPhase.INTERVIEWING or self._index != index:
                logger.debug(f"Ignoring duplicate finish for question {index}")
                return None
            await self._interrupt_turn()
            if self._phase is not SessionPhase.INTERVIEWING:
                return None

            segment = self.recorder.stop()
            self._set_turn(TurnState.PROCESSING)
            self._index += 1
            if self._index >= len(self.questions):
                self._complete(ended_early=False)
                return segment
            self._start_turn(self._index)
            task = self._turn_task

        await asyncio.wait({task})
        return segment

    # ------------------------------------------------------------------
    # Exits
    # ------------------------------------------------------------------

    async def end_interview(self) -> SessionOutcome:
        """End early, keeping what was recorded for the current question."""
        if self._phase in (SessionPhase.COMPLETED, SessionPhase.ABANDONED):
            return self._outcome
        if self._phase is not SessionPhase.INTERVIEWING:
            logger.info(f"Ending before the interview started (phase '{self._phase.value}'), abandoning")
            return await self.abandon()

        async with self._lock:
            if self._phase is not SessionPhase.INTERVIEWING:
                return self._outcome
            await self._interrupt_turn()
            if self._phase is not SessionPhase.INTERVIEWING:
                return self._outcome
            self.recorder.stop()
            self._index += 1
            self._complete(ended_early=True)
        return self._outcome

    async def abandon(self) -> SessionOutcome:
        """Stop everything and discard the session. Nothing is persisted."""
        if self._phase in (SessionPhase.COMPLETED, SessionPhase.ABANDONED):
            return self._outcome
        phase = self._phase

        prepare_task = self._prepare_task
        if prepare_task is not None and not prepare_task.done():
            prepare_task.cancel()
            await asyncio.wait({prepare_task})
        await self._interrupt_turn()

        self.recorder.discard()
        self._teardown()
        self._turn = None
        self._outcome = SessionOutcome(kind=OutcomeKind.ABANDONED)
        self._set_phase(SessionPhase.ABANDONED)
        self._emit(SessionAbandonedEvent(self.session_id, phase.value, self._index))
        self._finished.set()
        return self._outcome

    async def wait_completed(self) -> SessionOutcome:
        """Wait for the session to complete or be abandoned."""
        await self._finished.wait()
        return self._outcome

    def _complete(self, ended_early: bool) -> None:
        asked = self._index
        duration = int(round(self.clock() - self._started_clock))
        session = InterviewSession(
            id=self.session_id,
            role=self.config.role,
            company=self.config.company or "General",
            date=self._started_at.isoformat(),
            duration_seconds=duration,
            question_count=asked,
            interview_type=self.interview_type,
            questions_list=list(self.questions[:asked]),
        )
        self._teardown()
        self._turn = None

        if self.store is not None:
            try:
                self.store.upsert(session)
            except Exception as e:
                logger.error(f"Failed to save session {session.id}: {e}")
                self._emit(ErrorOccurredEvent(self.session_id, type(e).__name__, str(e), "state_machine"))

        self._outcome = SessionOutcome(kind=OutcomeKind.COMPLETED, session=session,
                                       segments=self.recorder.segments)
        logger.info(f"Interview completed: {asked} questions in {duration}s")
        self._set_phase(SessionPhase.COMPLETED)
        self._emit(SessionCompletedEvent(self.session_id, asked, duration, ended_early))
        self._finished.set()

    def _teardown(self) -> None:
        """Release everything the session holds. Safe on every exit path."""
        if self._cache is not None:
            self._cache.close()
        self.recorder.discard()
        try:
            self.device.stop_playback()
        except Exception as e:
            logger.warning(f"Error stopping playback: {e}")
        if self.device.is_acquired:
            try:
                self.device.release()
            except Exception as e:
                logger.warning(f"Error releasing audio device: {e}")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _set_phase(self, phase: SessionPhase) -> None:
        previous = self._phase
        self._phase = phase
        logger.info(f"Phase {previous.value} -> {phase.value}")
        self._emit(SessionPhaseChangedEvent(self.session_id, previous.value, phase.value))

    def _set_turn(self, turn: TurnState) -> None:
        self._turn = turn
        logger.debug(f"Turn {turn.value} (question {self._index})")
        self._emit(TurnStateChangedEvent(self.session_id, turn.value, self._index))

    def _emit(self, event: InterviewEvent) -> None:
        if self.event_bus:
            self.event_bus.emit(event)
