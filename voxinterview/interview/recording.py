"""
Per-question answer recording.
"""
import logging
from typing import List, Optional

from .events import InterviewEventBus, AnswerRecordedEvent, ErrorOccurredEvent
from .models import AnswerSegment
from ..infrastructure.audio import AudioDevice

logger = logging.getLogger("recording")


class RecordingManager:
    """
    Records one answer segment per question on an acquired device.

    Segments stay 1:1 with questions asked: stopping while idle, or after a
    capture error, still appends an empty segment.
    """

    def __init__(self, device: AudioDevice, event_bus: Optional[InterviewEventBus] = None,
                 session_id: Optional[str] = None):
        self.device = device
        self.event_bus = event_bus
        self.session_id = session_id
        self._segments: List[AnswerSegment] = []
        self._recording = False

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def segments(self) -> List[AnswerSegment]:
        return list(self._segments)

    def start(self) -> bool:
        """Begin capturing into a fresh buffer. Returns False if nothing was started."""
        if self._recording:
            logger.debug("Already recording, ignoring start")
            return False
        try:
            self.device.start_capture()
        except Exception as e:
            logger.error(f"Failed to start recording for question {len(self._segments)}: {e}")
            self._emit_error(e)
            return False
        self._recording = True
        logger.info(f"Recording answer {len(self._segments)}")
        return True

    def stop(self) -> AnswerSegment:
        """Finalize the current capture and append it as the next segment."""
        index = len(self._segments)
        audio = b""
        if self._recording:
            self._recording = False
            try:
                audio = self.device.stop_capture()
            except Exception as e:
                logger.error(f"Failed to finish recording for question {index}: {e}")
                self._emit_error(e)
        else:
            logger.debug(f"Stop without active recording, storing empty segment for question {index}")

        segment = AnswerSegment(question_index=index, audio=audio, sample_rate=self.device.target_rate)
        self._segments.append(segment)
        logger.info(f"Stored answer {index}: {segment.duration_seconds:.1f}s")
        if self.event_bus:
            self.event_bus.emit(AnswerRecordedEvent(
                self.session_id, index, segment.duration_seconds, segment.is_empty
            ))
        return segment

    def discard(self) -> None:
        """Stop any capture without storing it."""
        if not self._recording:
            return
        self._recording = False
        try:
            self.device.stop_capture()
        except Exception as e:
            logger.warning(f"Error while discarding recording: {e}")
        logger.info("Discarded in-progress recording")

    def concatenated_audio(self) -> AnswerSegment:
        """All answers as one continuous track."""
        return AnswerSegment(
            question_index=0,
            audio=b"".join(s.audio for s in self._segments),
            sample_rate=self.device.target_rate,
        )

    def reset(self) -> None:
        self.discard()
        self._segments.clear()

    def _emit_error(self, error: Exception) -> None:
        if self.event_bus:
            self.event_bus.emit(ErrorOccurredEvent(
                self.session_id, type(error).__name__, str(error), "recording"
            ))
