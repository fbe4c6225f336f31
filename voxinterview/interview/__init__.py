"""Interview system components.

This module contains the business logic for conducting spoken mock
interviews: turn taking, audio prefetch, answer recording and the
post-interview analysis pipeline.
"""

# Data models
from .models import (
    Voice, InterviewType, Speaker, TurnState, SessionPhase, AnalysisStage,
    StageStatus, OutcomeKind, QuestionSet, QuestionRequest, AnswerSegment,
    TranscriptItem, AudioAnalysis, QuestionFeedback, ContentAnalysis,
    TranscriptionResult, InterviewSession, SessionOutcome
)

# Structured schemas
from .schemas import (
    InterviewConfig, question_count_for, build_question_request,
    parse_question_set, parse_transcription, parse_content_analysis
)

# Service interfaces and implementations
from .services import (
    QuestionGenerator, SpeechSynthesizer, InterviewTranscriber, ContentAnalyzer,
    GeminiQuestionGenerator, GeminiSpeechSynthesizer, GoogleCloudSpeechSynthesizer,
    GeminiInterviewTranscriber, GeminiContentAnalyzer
)

# Core components
from .audio_cache import AudioCache
from .recording import RecordingManager
from .state_machine import TurnStateMachine
from .analysis import AnalysisPipeline, build_answer_pairs
from .session_setup import SetupError, SessionConfigResolver, InterviewSessionRunner

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    EventType, InterviewEvent, SessionPhaseChangedEvent, TurnStateChangedEvent,
    QuestionStartedEvent, AnswerRecordedEvent, AudioFallbackEvent,
    InitializationFailedEvent, SessionCompletedEvent, SessionAbandonedEvent,
    StageStatusChangedEvent, ErrorOccurredEvent
)

__all__ = [
    # Data models
    "Voice", "InterviewType", "Speaker", "TurnState", "SessionPhase", "AnalysisStage",
    "StageStatus", "OutcomeKind", "QuestionSet", "QuestionRequest", "AnswerSegment",
    "TranscriptItem", "AudioAnalysis", "QuestionFeedback", "ContentAnalysis",
    "TranscriptionResult", "InterviewSession", "SessionOutcome",

    # Schemas
    "InterviewConfig", "question_count_for", "build_question_request",
    "parse_question_set", "parse_transcription", "parse_content_analysis",

    # Services
    "QuestionGenerator", "SpeechSynthesizer", "InterviewTranscriber", "ContentAnalyzer",
    "GeminiQuestionGenerator", "GeminiSpeechSynthesizer", "GoogleCloudSpeechSynthesizer",
    "GeminiInterviewTranscriber", "GeminiContentAnalyzer",

    # Core components
    "AudioCache", "RecordingManager", "TurnStateMachine",
    "AnalysisPipeline", "build_answer_pairs",
    "SetupError", "SessionConfigResolver", "InterviewSessionRunner",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics",
    "EventType", "InterviewEvent", "SessionPhaseChangedEvent", "TurnStateChangedEvent",
    "QuestionStartedEvent", "AnswerRecordedEvent", "AudioFallbackEvent",
    "InitializationFailedEvent", "SessionCompletedEvent", "SessionAbandonedEvent",
    "StageStatusChangedEvent", "ErrorOccurredEvent",
]
