"""
Service classes for the interview system.

Each external collaborator is an async interface with a Gemini backed
implementation. The HTTP client is blocking, so every call runs in a worker
thread and the event loop keeps playing audio and prefetching meanwhile.
"""
import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import (
    Voice, QuestionRequest, QuestionSet, AnswerSegment, TranscriptItem,
    TranscriptionResult, ContentAnalysis
)
from .prompts import InterviewPrompts, PromptFormatter
from .schemas import (
    QUESTIONS_SCHEMA, AUDIO_ANALYSIS_SCHEMA, CONTENT_ANALYSIS_SCHEMA,
    parse_question_set, parse_transcription, parse_content_analysis
)
from ..infrastructure.llm import VertexRestClient
from ..infrastructure.audio import synthesize_linear16
from ..config import (
    GEMINI_VOICES, GOOGLE_CLOUD_VOICES, GEMINI_TTS_SAMPLE_RATE,
    GOOGLE_TTS_SAMPLE_RATE, LANGUAGE_CODE
)

logger = logging.getLogger("services")

# (question text, recorded answer or None when nothing usable was captured)
AnswerPair = Tuple[str, Optional[AnswerSegment]]


class QuestionGenerator(ABC):
    """Produces the ordered question list for an interview."""

    @abstractmethod
    async def generate(self, request: QuestionRequest) -> QuestionSet:
        ...


class SpeechSynthesizer(ABC):
    """Turns question text into base64 PCM16 mono audio at ``sample_rate``."""

    sample_rate: int = GEMINI_TTS_SAMPLE_RATE

    @abstractmethod
    async def synthesize(self, text: str, voice: Voice) -> str:
        ...


class InterviewTranscriber(ABC):
    """Transcribes recorded answers and scores their audio characteristics."""

    @abstractmethod
    async def transcribe(self, pairs: Sequence[AnswerPair]) -> TranscriptionResult:
        ...


class ContentAnalyzer(ABC):
    """Scores the content of a transcript."""

    @abstractmethod
    async def analyze(self, transcript: List[TranscriptItem]) -> ContentAnalysis:
        ...


class GeminiQuestionGenerator(QuestionGenerator):
    """Question generation with a structured JSON response."""

    def __init__(self, client: VertexRestClient, model: Optional[str] = None, temperature: float = 0.7):
        self.client = client
        self.model = model
        self.temperature = temperature

    async def generate(self, request: QuestionRequest) -> QuestionSet:
        prompt = InterviewPrompts.question_generation(request)
        logger.info(f"Generating {request.question_count} questions for role '{request.role}'")
        data = await asyncio.to_thread(
            self.client.generate_json, prompt, QUESTIONS_SCHEMA, self.model, self.temperature
        )
        question_set = parse_question_set(data)
        logger.info(f"Generated {len(question_set)} questions ({question_set.interview_type.value})")
        return question_set


class GeminiSpeechSynthesizer(SpeechSynthesizer):
    """Gemini TTS with prebuilt voices. Output is 24 kHz PCM16 mono."""

    sample_rate = GEMINI_TTS_SAMPLE_RATE

    def __init__(self, client: VertexRestClient, model: Optional[str] = None,
                 voices: Optional[Dict[str, str]] = None):
        self.client = client
        self.model = model
        self.voices = voices or GEMINI_VOICES

    async def synthesize(self, text: str, voice: Voice) -> str:
        if not text.strip():
            raise ValueError("Cannot synthesize empty text")
        voice_name = self.voices[Voice(voice).value]
        return await asyncio.to_thread(
            self.client.generate_speech, InterviewPrompts.speech_instruction(text), voice_name, self.model
        )


class GoogleCloudSpeechSynthesizer(SpeechSynthesizer):
    """Google Cloud Text-to-Speech (LINEAR16, Neural2 voices)."""

    sample_rate = GOOGLE_TTS_SAMPLE_RATE

    def __init__(self, voices: Optional[Dict[str, str]] = None, language_code: str = LANGUAGE_CODE):
        self.voices = voices or GOOGLE_CLOUD_VOICES
        self.language_code = language_code

    async def synthesize(self, text: str, voice: Voice) -> str:
        voice_name = self.voices[Voice(voice).value]
        pcm16 = await asyncio.to_thread(
            synthesize_linear16, text, voice_name, self.sample_rate, self.language_code
        )
        return base64.b64encode(pcm16).decode("ascii")


class GeminiInterviewTranscriber(InterviewTranscriber):
    """
    Multimodal transcription: every answer is sent as an inline WAV part
    directly after its question, and the model reconstructs the whole
    conversation plus audio-characteristic scores in one call.
    """

    def __init__(self, client: VertexRestClient, model: Optional[str] = None):
        self.client = client
        self.model = model

    def build_parts(self, pairs: Sequence[AnswerPair]) -> List[Dict[str, Any]]:
        parts: List[Dict[str, Any]] = [{"text": InterviewPrompts.transcription_intro()}]
        for i, (question, segment) in enumerate(pairs):
            parts.append({"text": PromptFormatter.question_label(i, question)})
            has_audio = segment is not None and not segment.is_empty
            parts.append({"text": PromptFormatter.answer_label(i, has_audio)})
            if has_audio:
                parts.append({
                    "inlineData": {
                        "mimeType": "audio/wav",
                        "data": base64.b64encode(segment.to_wav_bytes()).decode("ascii"),
                    }
                })
        parts.append({"text": InterviewPrompts.transcription_outro()})
        return parts

    async def transcribe(self, pairs: Sequence[AnswerPair]) -> TranscriptionResult:
        parts = self.build_parts(pairs)
        with_audio = sum(1 for _, s in pairs if s is not None and not s.is_empty)
        logger.info(f"Transcribing {len(pairs)} answers ({with_audio} with audio)")
        data = await asyncio.to_thread(
            self.client.generate_json, parts, AUDIO_ANALYSIS_SCHEMA, self.model
        )
        return parse_transcription(data)


class GeminiContentAnalyzer(ContentAnalyzer):
    """Content scoring with per-question feedback."""

    def __init__(self, client: VertexRestClient, model: Optional[str] = None):
        self.client = client
        self.model = model

    async def analyze(self, transcript: List[TranscriptItem]) -> ContentAnalysis:
        if not transcript:
            raise ValueError("Cannot analyze an empty transcript")
        prompt = InterviewPrompts.content_analysis(transcript)
        logger.info(f"Analyzing content of {len(transcript)} transcript lines")
        data = await asyncio.to_thread(
            self.client.generate_json, prompt, CONTENT_ANALYSIS_SCHEMA, self.model
        )
        return parse_content_analysis(data)
