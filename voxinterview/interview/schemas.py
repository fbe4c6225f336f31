"""
Structured schemas for the interview system.

Pydantic models validate everything that crosses a trust boundary: the setup
input and the JSON returned by the LLM collaborators. The matching
``*_SCHEMA`` dicts are sent to Gemini as ``responseSchema``.
"""
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import (
    Voice, InterviewType, Speaker, QuestionSet, QuestionRequest, TranscriptItem, AudioAnalysis,
    QuestionFeedback, ContentAnalysis, TranscriptionResult
)
from ..config import (
    DEFAULT_DURATION_MINUTES, MIN_DURATION_MINUTES, MAX_DURATION_MINUTES,
    DEFAULT_CANDIDATE_NAME, MINUTES_PER_QUESTION, MIN_QUESTION_COUNT
)


def question_count_for(duration_minutes: int) -> int:
    """Roughly one question per 2.5 minutes, never fewer than three."""
    return max(MIN_QUESTION_COUNT, int(duration_minutes // MINUTES_PER_QUESTION))


class InterviewConfig(BaseModel):
    """Setup for one interview. Immutable once the session starts."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    role: str = Field(min_length=1)
    company: Optional[str] = None
    job_description: Optional[str] = None
    duration_minutes: int = Field(default=DEFAULT_DURATION_MINUTES,
                                  ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    context: str = ""
    voice: Voice = Voice.FEMALE
    candidate_name: str = DEFAULT_CANDIDATE_NAME

    @field_validator("company", "job_description", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("candidate_name", mode="before")
    @classmethod
    def _default_name(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_CANDIDATE_NAME
        return value

    @property
    def question_count(self) -> int:
        return question_count_for(self.duration_minutes)


def build_question_request(config: InterviewConfig) -> QuestionRequest:
    """Everything question generation needs, derived from a validated config."""
    return QuestionRequest(
        role=config.role,
        duration_minutes=config.duration_minutes,
        question_count=config.question_count,
        company=config.company,
        job_description=config.job_description,
        context=config.context,
        candidate_name=config.candidate_name,
    )


def _clamp_score(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class QuestionSetResponse(BaseModel):
    questions: List[str]
    type: InterviewType = InterviewType.MIXED


class TranscriptEntryResponse(BaseModel):
    role: Speaker
    text: str = ""


class AudioAnalysisResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    confidence_score: float = Field(alias="confidenceScore")
    clarity_score: float = Field(alias="clarityScore")
    pace: str = ""
    tone: str = ""
    feedback: str = ""

    @field_validator("confidence_score", "clarity_score")
    @classmethod
    def _clamp(cls, value):
        return _clamp_score(value)


class AudioAnalysisEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: List[TranscriptEntryResponse]
    audio_analysis: AudioAnalysisResponse = Field(alias="audioAnalysis")


class QuestionFeedbackResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    user_answer: str = Field(default="", alias="userAnswer")
    score: float = 0.0
    feedback: str = ""
    improved_answer: str = Field(default="", alias="improvedAnswer")

    @field_validator("score")
    @classmethod
    def _clamp(cls, value):
        return _clamp_score(value)


class ContentAnalysisResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall_score: float = Field(alias="overallScore")
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    question_feedback: List[QuestionFeedbackResponse] = Field(default_factory=list, alias="questionFeedback")

    @field_validator("overall_score")
    @classmethod
    def _clamp(cls, value):
        return _clamp_score(value)


QUESTIONS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "questions": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "List of interview questions",
        },
        "type": {
            "type": "STRING",
            "enum": [t.value for t in InterviewType],
            "description": "The type of interview generated",
        },
    },
    "required": ["questions", "type"],
}

AUDIO_ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "transcript": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "role": {"type": "STRING", "enum": [s.value for s in Speaker]},
                    "text": {"type": "STRING"},
                },
                "required": ["role", "text"],
            },
            "description": "The full conversation transcript, including the interviewer's questions (AI) and candidate's answers (User).",
        },
        "audioAnalysis": {
            "type": "OBJECT",
            "properties": {
                "confidenceScore": {"type": "NUMBER", "description": "0-100 score on vocal confidence"},
                "clarityScore": {"type": "NUMBER", "description": "0-100 score on speech clarity"},
                "pace": {"type": "STRING", "description": "Description of speech pace (e.g., Fast, Slow, Moderate)"},
                "tone": {"type": "STRING", "description": "Description of tone (e.g., Monotone, Enthusiastic, Nervous)"},
                "feedback": {"type": "STRING", "description": "General feedback on the audio characteristics"},
            },
            "required": ["confidenceScore", "clarityScore", "pace", "tone", "feedback"],
        },
    },
    "required": ["transcript", "audioAnalysis"],
}

CONTENT_ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "overallScore": {"type": "NUMBER", "description": "Overall content score 0-100"},
        "strengths": {"type": "ARRAY", "items": {"type": "STRING"}},
        "improvements": {"type": "ARRAY", "items": {"type": "STRING"}},
        "questionFeedback": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "question": {"type": "STRING"},
                    "userAnswer": {"type": "STRING", "description": "The VERBATIM answer given by the candidate from the transcript."},
                    "score": {"type": "NUMBER", "description": "0-100"},
                    "feedback": {"type": "STRING"},
                    "improvedAnswer": {"type": "STRING", "description": "An example of a better way to answer this question"},
                },
                "required": ["question", "userAnswer", "score", "feedback", "improvedAnswer"],
            },
        },
    },
    "required": ["overallScore", "strengths", "improvements", "questionFeedback"],
}


def parse_question_set(data: Dict[str, Any]) -> QuestionSet:
    """
    Validate a question generation response.

    Raises:
        ValueError: If the payload does not match the expected structure
    """
    try:
        parsed = QuestionSetResponse.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid question set structure: {e}") from e
    questions = tuple(q.strip() for q in parsed.questions if q and q.strip())
    return QuestionSet(questions=questions, interview_type=parsed.type)


def parse_transcription(data: Dict[str, Any]) -> TranscriptionResult:
    """Validate a transcription + audio metrics response."""
    try:
        parsed = AudioAnalysisEnvelope.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid transcription structure: {e}") from e
    audio = parsed.audio_analysis
    return TranscriptionResult(
        transcript=[TranscriptItem(speaker=t.role, text=t.text) for t in parsed.transcript],
        audio_analysis=AudioAnalysis(
            confidence_score=audio.confidence_score,
            clarity_score=audio.clarity_score,
            pace=audio.pace,
            tone=audio.tone,
            feedback=audio.feedback,
        ),
    )


def parse_content_analysis(data: Dict[str, Any]) -> ContentAnalysis:
    """Validate a content analysis response."""
    try:
        parsed = ContentAnalysisResponse.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid content analysis structure: {e}") from e
    return ContentAnalysis(
        overall_score=parsed.overall_score,
        strengths=list(parsed.strengths),
        improvements=list(parsed.improvements),
        question_feedback=[
            QuestionFeedback(
                question=q.question,
                user_answer=q.user_answer,
                score=q.score,
                feedback=q.feedback,
                improved_answer=q.improved_answer,
            )
            for q in parsed.question_feedback
        ],
    )
