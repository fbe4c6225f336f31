"""
Post-interview analysis pipeline.

Two ordered stages run over a stored session record:

1. transcription: question/answer-audio pairs -> transcript + audio analysis
2. content: transcript -> content analysis

Each stage re-reads the record, fills in its own fields and writes the whole
record back. A failing stage is recorded and can be retried on its own;
nothing a succeeded stage wrote is ever rolled back.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from .events import InterviewEventBus, StageStatusChangedEvent, ErrorOccurredEvent
from .models import AnalysisStage, AnswerSegment, InterviewSession, StageStatus
from .services import AnswerPair, InterviewTranscriber, ContentAnalyzer
from ..infrastructure.data import ProfileStore

logger = logging.getLogger("analysis")


def build_answer_pairs(questions: Sequence[str],
                       segments: Optional[Sequence[AnswerSegment]]) -> List[AnswerPair]:
    """Pair each question with its recorded answer. Missing or empty answers become None."""
    by_index = {s.question_index: s for s in segments or []}
    pairs: List[AnswerPair] = []
    for i, question in enumerate(questions):
        segment = by_index.get(i)
        pairs.append((question, segment if segment is not None and not segment.is_empty else None))
    return pairs


class AnalysisPipeline:
    """Runs, resumes and retries the analysis stages for one session at a time."""

    def __init__(self,
                 store: ProfileStore,
                 transcriber: InterviewTranscriber,
                 content_analyzer: ContentAnalyzer,
                 event_bus: Optional[InterviewEventBus] = None):
        self.store = store
        self.transcriber = transcriber
        self.content_analyzer = content_analyzer
        self.event_bus = event_bus
        self.session_id: Optional[str] = None
        self.errors: Dict[AnalysisStage, str] = {}
        self._status: Dict[AnalysisStage, StageStatus] = {s: StageStatus.PENDING for s in AnalysisStage}
        self._lock = asyncio.Lock()

    @property
    def status(self) -> Dict[AnalysisStage, StageStatus]:
        return dict(self._status)

    @property
    def is_complete(self) -> bool:
        return all(s is StageStatus.SUCCESS for s in self._status.values())

    @property
    def has_error(self) -> bool:
        return any(s is StageStatus.ERROR for s in self._status.values())

    @property
    def is_processing(self) -> bool:
        return any(s is StageStatus.LOADING for s in self._status.values())

    async def run(self, session_id: str,
                  segments: Optional[Sequence[AnswerSegment]] = None) -> InterviewSession:
        """
        Run whichever stages the stored record is still missing.

        Args:
            session_id: Id of a stored session record
            segments: Recorded answers, needed only while the transcript is missing

        Returns:
            The record as stored after this run

        Raises:
            SessionNotFoundError: If the store has no such session
        """
        async with self._lock:
            session = self.store.get(session_id)
            self._bind(session_id)

            if session.transcript is None:
                session = await self._run_transcription(session, segments)
            else:
                self._set_status(AnalysisStage.TRANSCRIPTION, StageStatus.SUCCESS)

            if session.transcript is None:
                return session

            if session.content_analysis is None:
                session = await self._run_content(session)
            else:
                self._set_status(AnalysisStage.CONTENT, StageStatus.SUCCESS)
            return session

    async def retry(self, stage: AnalysisStage, session_id: str,
                    segments: Optional[Sequence[AnswerSegment]] = None) -> InterviewSession:
        """Re-run one stage. A recovered transcription continues into a never-attempted content stage."""
        stage = AnalysisStage(stage)
        async with self._lock:
            session = self.store.get(session_id)
            self._bind(session_id)
            logger.info(f"Retrying {stage.value} for session {session_id}")

            if stage is AnalysisStage.TRANSCRIPTION:
                if session.transcript is not None:
                    self._set_status(AnalysisStage.TRANSCRIPTION, StageStatus.SUCCESS)
                else:
                    session = await self._run_transcription(session, segments)
                if (session.transcript is not None and session.content_analysis is None
                        and self._status[AnalysisStage.CONTENT] is StageStatus.PENDING):
                    session = await self._run_content(session)
                return session

            if session.content_analysis is not None:
                self._set_status(AnalysisStage.CONTENT, StageStatus.SUCCESS)
            elif session.transcript is None:
                self._record_error(AnalysisStage.CONTENT, "Content analysis needs a transcript; run transcription first")
            else:
                session = await self._run_content(session)
            return session

    async def _run_transcription(self, session: InterviewSession,
                                 segments: Optional[Sequence[AnswerSegment]]) -> InterviewSession:
        stage = AnalysisStage.TRANSCRIPTION
        pairs = build_answer_pairs(session.questions_list, segments)
        # Never store a transcript without a single recorded answer
        if all(segment is None for _, segment in pairs):
            logger.warning(f"No recorded answers for session {session.id}, not transcribing")
            self._record_error(stage, "No recorded answers available to transcribe")
            return session
        self._set_status(stage, StageStatus.LOADING)
        try:
            result = await self.transcriber.transcribe(pairs)
            current = self.store.get(session.id)
            current.transcript = list(result.transcript)
            current.audio_analysis = result.audio_analysis
            self.store.upsert(current)
        except Exception as e:
            logger.error(f"Transcription failed for session {session.id}: {e}")
            self._record_error(stage, str(e) or type(e).__name__)
            return session
        logger.info(f"Transcribed session {session.id}: {len(current.transcript)} lines")
        self._set_status(stage, StageStatus.SUCCESS)
        return current

    async def _run_content(self, session: InterviewSession) -> InterviewSession:
        stage = AnalysisStage.CONTENT
        self._set_status(stage, StageStatus.LOADING)
        try:
            content = await self.content_analyzer.analyze(list(session.transcript))
            current = self.store.get(session.id)
            current.content_analysis = content
            self.store.upsert(current)
        except Exception as e:
            logger.error(f"Content analysis failed for session {session.id}: {e}")
            self._record_error(stage, str(e) or type(e).__name__)
            return session
        logger.info(f"Content analysis for session {session.id}: score {content.overall_score:.0f}")
        self._set_status(stage, StageStatus.SUCCESS)
        return current

    def _bind(self, session_id: str) -> None:
        if self.session_id == session_id:
            return
        self.session_id = session_id
        self.errors.clear()
        self._status = {s: StageStatus.PENDING for s in AnalysisStage}

    def _record_error(self, stage: AnalysisStage, message: str) -> None:
        self.errors[stage] = message
        self._set_status(stage, StageStatus.ERROR, message)
        if self.event_bus:
            self.event_bus.emit(ErrorOccurredEvent(self.session_id, stage.value, message, "analysis"))

    def _set_status(self, stage: AnalysisStage, status: StageStatus, error: Optional[str] = None) -> None:
        if status is not StageStatus.ERROR:
            self.errors.pop(stage, None)
        self._status[stage] = status
        logger.debug(f"Stage {stage.value}: {status.value}")
        if self.event_bus:
            self.event_bus.emit(StageStatusChangedEvent(self.session_id, stage.value, status.value, error))
