"""
Data models for the interview system.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, List, Any, Tuple

from ..infrastructure.audio.processing import pcm16_to_wav_bytes


class Voice(str, Enum):
    """Interviewer voice selection."""
    MALE = "Male"
    FEMALE = "Female"


class InterviewType(str, Enum):
    """Overall interview type inferred by question generation."""
    BEHAVIORAL = "Behavioral"
    TECHNICAL = "Technical"
    MIXED = "Mixed"


class Speaker(str, Enum):
    """Who said a transcript line."""
    AI = "AI"
    USER = "User"


class TurnState(str, Enum):
    """Who holds the floor during an interview."""
    AI_SPEAKING = "ai_speaking"
    USER_SPEAKING = "user_speaking"
    PROCESSING = "processing"


class SessionPhase(str, Enum):
    """Lifecycle of one interview attempt."""
    SETUP = "setup"
    PREPARING = "preparing"
    INTERVIEWING = "interviewing"
    COMPLETED = "completed"
    INITIALIZATION_ERROR = "initialization_error"
    ABANDONED = "abandoned"


class AnalysisStage(str, Enum):
    """Post-session analysis stages, in execution order."""
    TRANSCRIPTION = "transcription"
    CONTENT = "content"


class StageStatus(str, Enum):
    """Progress of one analysis stage."""
    PENDING = "pending"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class OutcomeKind(str, Enum):
    """How an interview attempt ended."""
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    INITIALIZATION_ERROR = "initialization_error"


@dataclass(frozen=True)
class QuestionSet:
    """Generated questions, in the order they will be asked."""
    questions: Tuple[str, ...]
    interview_type: InterviewType = InterviewType.MIXED

    def __len__(self) -> int:
        return len(self.questions)


@dataclass(frozen=True)
class QuestionRequest:
    """Everything question generation needs to know about the interview."""
    role: str
    duration_minutes: int
    question_count: int
    company: Optional[str] = None
    job_description: Optional[str] = None
    context: str = ""
    candidate_name: str = "Candidate"


@dataclass(frozen=True)
class AnswerSegment:
    """Raw recorded audio (PCM16 mono) for exactly one question."""
    question_index: int
    audio: bytes
    sample_rate: int

    @property
    def is_empty(self) -> bool:
        return len(self.audio) == 0

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.audio) / 2 / float(self.sample_rate)

    def to_wav_bytes(self) -> bytes:
        return pcm16_to_wav_bytes(self.audio, self.sample_rate)


@dataclass
class TranscriptItem:
    """One line of the reconstructed conversation."""
    speaker: Speaker
    text: str
    timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"speaker": self.speaker.value, "text": self.text}
        if self.timestamp:
            data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptItem":
        return cls(speaker=Speaker(data["speaker"]), text=data.get("text", ""),
                   timestamp=data.get("timestamp"))


@dataclass
class AudioAnalysis:
    """Audio-characteristic scores for the candidate's answers."""
    confidence_score: float
    clarity_score: float
    pace: str
    tone: str
    feedback: str


@dataclass
class QuestionFeedback:
    """Content feedback for one question-answer pair."""
    question: str
    user_answer: str
    score: float
    feedback: str
    improved_answer: str


@dataclass
class ContentAnalysis:
    """Content-quality evaluation of the whole transcript."""
    overall_score: float
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    question_feedback: List[QuestionFeedback] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
            "question_feedback": [vars(q).copy() for q in self.question_feedback],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentAnalysis":
        return cls(
            overall_score=data["overall_score"],
            strengths=list(data.get("strengths") or []),
            improvements=list(data.get("improvements") or []),
            question_feedback=[QuestionFeedback(**q) for q in data.get("question_feedback") or []],
        )


@dataclass
class TranscriptionResult:
    """Output of the transcription stage."""
    transcript: List[TranscriptItem]
    audio_analysis: AudioAnalysis


@dataclass
class InterviewSession:
    """Persisted record of one interview attempt, filled in incrementally by analysis."""
    id: str
    role: str
    company: str
    date: str
    duration_seconds: int
    question_count: int
    interview_type: InterviewType
    questions_list: List[str] = field(default_factory=list)
    transcript: Optional[List[TranscriptItem]] = None
    audio_analysis: Optional[AudioAnalysis] = None
    content_analysis: Optional[ContentAnalysis] = None

    @property
    def has_transcript(self) -> bool:
        return self.transcript is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": self.id,
            "role": self.role,
            "company": self.company,
            "date": self.date,
            "duration_seconds": self.duration_seconds,
            "question_count": self.question_count,
            "interview_type": self.interview_type.value,
            "questions_list": list(self.questions_list),
            "transcript": [t.to_dict() for t in self.transcript] if self.transcript is not None else None,
            "audio_analysis": vars(self.audio_analysis).copy() if self.audio_analysis else None,
            "content_analysis": self.content_analysis.to_dict() if self.content_analysis else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterviewSession":
        transcript = data.get("transcript")
        audio = data.get("audio_analysis")
        content = data.get("content_analysis")
        return cls(
            id=data["id"],
            role=data["role"],
            company=data.get("company") or "General",
            date=data["date"],
            duration_seconds=int(data.get("duration_seconds", 0)),
            question_count=int(data.get("question_count", 0)),
            interview_type=InterviewType(data.get("interview_type", InterviewType.MIXED.value)),
            questions_list=list(data.get("questions_list") or []),
            transcript=[TranscriptItem.from_dict(t) for t in transcript] if transcript is not None else None,
            audio_analysis=AudioAnalysis(**audio) if audio else None,
            content_analysis=ContentAnalysis.from_dict(content) if content else None,
        )


@dataclass
class SessionOutcome:
    """Exit condition of an interview attempt, as surfaced to the caller."""
    kind: OutcomeKind
    session: Optional[InterviewSession] = None
    segments: List[AnswerSegment] = field(default_factory=list)
    message: Optional[str] = None
