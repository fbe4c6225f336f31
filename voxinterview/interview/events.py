"""
Event-driven architecture for the interview system.

The state machine, recorder and analysis pipeline only ever emit events;
presentation code subscribes to the bus.
"""
import time
import logging
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    PHASE_CHANGED = "phase_changed"
    TURN_CHANGED = "turn_changed"
    QUESTION_STARTED = "question_started"
    ANSWER_RECORDED = "answer_recorded"
    AUDIO_FALLBACK = "audio_fallback"
    INITIALIZATION_FAILED = "initialization_failed"
    SESSION_COMPLETED = "session_completed"
    SESSION_ABANDONED = "session_abandoned"
    STAGE_STATUS_CHANGED = "stage_status_changed"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    session_id: Optional[str]
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionPhaseChangedEvent(InterviewEvent):
    """Event fired on every session phase transition."""
    def __init__(self, session_id: Optional[str], previous: str, phase: str,
                 timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.PHASE_CHANGED,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={"previous": previous, "phase": phase}
        )


@dataclass
class TurnStateChangedEvent(InterviewEvent):
    """Event fired when the floor passes between interviewer and candidate."""
    def __init__(self, session_id: Optional[str], turn: str, question_index: int,
                 timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.TURN_CHANGED,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={"turn": turn, "question_index": question_index}
        )


@dataclass
class QuestionStartedEvent(InterviewEvent):
    """Event fired when the interviewer starts asking a question."""
    def __init__(self, session_id: Optional[str], question_index: int, question: str,
                 question_count: int, timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.QUESTION_STARTED,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={
                "question_index": question_index,
                "question": question,
                "question_count": question_count
            }
        )


@dataclass
class AnswerRecordedEvent(InterviewEvent):
    """Event fired when an answer segment is stored."""
    def __init__(self, session_id: Optional[str], question_index: int,
                 duration_seconds: float, empty: bool, timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.ANSWER_RECORDED,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={
                "question_index": question_index,
                "duration_seconds": duration_seconds,
                "empty": empty
            }
        )


@dataclass
class AudioFallbackEvent(InterviewEvent):
    """Event fired when a question could not be played and the turn went straight to the candidate."""
    def __init__(self, session_id: Optional[str], question_index: int, reason: str,
                 timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.AUDIO_FALLBACK,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={"question_index": question_index, "reason": reason}
        )


@dataclass
class InitializationFailedEvent(InterviewEvent):
    """Event fired when preparing the session fails."""
    def __init__(self, session_id: Optional[str], message: str,
                 timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.INITIALIZATION_FAILED,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={"message": message}
        )


@dataclass
class SessionCompletedEvent(InterviewEvent):
    """Event fired when an interview completes (including early end)."""
    def __init__(self, session_id: Optional[str], question_count: int,
                 duration_seconds: int, ended_early: bool, timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.SESSION_COMPLETED,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={
                "question_count": question_count,
                "duration_seconds": duration_seconds,
                "ended_early": ended_early
            }
        )


@dataclass
class SessionAbandonedEvent(InterviewEvent):
    """Event fired when an interview is abandoned."""
    def __init__(self, session_id: Optional[str], phase: str, question_index: int,
                 timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.SESSION_ABANDONED,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={"phase": phase, "question_index": question_index}
        )


@dataclass
class StageStatusChangedEvent(InterviewEvent):
    """Event fired when an analysis stage changes status."""
    def __init__(self, session_id: Optional[str], stage: str, status: str,
                 error: Optional[str] = None, timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.STAGE_STATUS_CHANGED,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={"stage": stage, "status": status, "error": error}
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    """Event fired when an error occurs."""
    def __init__(self, session_id: Optional[str], error_type: str,
                 error_message: str, component: str, timestamp: Optional[float] = None):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=timestamp if timestamp is not None else time.time(),
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for interview system communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from specific event type."""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        A failing handler is logged and never propagates into the emitter.
        """
        logger.debug(f"Emitting event: {event.event_type.value} for session {event.session_id}")

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type.value}: {e}")

        for handler in list(self._global_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: InterviewEvent) -> None:
        """Log event details."""
        self.logger.info(f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class InterviewMetrics:
    """Collects metrics from interview events."""

    def __init__(self):
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == EventType.QUESTION_STARTED:
            self.questions_asked += 1
        elif event.event_type == EventType.ANSWER_RECORDED:
            self.answers_recorded += 1
            if event.data.get("empty"):
                self.empty_answers += 1
        elif event.event_type == EventType.AUDIO_FALLBACK:
            self.audio_fallbacks += 1
        elif event.event_type == EventType.INITIALIZATION_FAILED:
            self.initialization_failures += 1
        elif event.event_type == EventType.SESSION_COMPLETED:
            self.sessions_completed += 1
        elif event.event_type == EventType.SESSION_ABANDONED:
            self.sessions_abandoned += 1
        elif event.event_type == EventType.ERROR_OCCURRED:
            self.errors_occurred += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return {
            "questions_asked": self.questions_asked,
            "answers_recorded": self.answers_recorded,
            "empty_answers": self.empty_answers,
            "audio_fallbacks": self.audio_fallbacks,
            "initialization_failures": self.initialization_failures,
            "sessions_completed": self.sessions_completed,
            "sessions_abandoned": self.sessions_abandoned,
            "errors_occurred": self.errors_occurred
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.questions_asked = 0
        self.answers_recorded = 0
        self.empty_answers = 0
        self.audio_fallbacks = 0
        self.initialization_failures = 0
        self.sessions_completed = 0
        self.sessions_abandoned = 0
        self.errors_occurred = 0
