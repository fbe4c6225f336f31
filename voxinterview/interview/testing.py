"""
Testing infrastructure with mock services for the interview system.

The mocks stand in for every external collaborator and for the audio
device, so the state machine and analysis pipeline can run without network
access or sound hardware (tests and ``--dry-run`` style demos).
"""
import asyncio
import base64
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .models import (
    Voice, InterviewType, Speaker, QuestionRequest, QuestionSet, TranscriptItem,
    AudioAnalysis, QuestionFeedback, ContentAnalysis, TranscriptionResult, InterviewSession
)
from .prompts import PromptFormatter
from .services import (
    AnswerPair, QuestionGenerator, SpeechSynthesizer, InterviewTranscriber, ContentAnalyzer
)
from ..infrastructure.audio import AudioBuffer, AudioDevice, AudioDeviceError
from ..infrastructure.audio.processing import encode_pcm16

DEFAULT_QUESTIONS = (
    "Tell me about yourself and what drew you to backend engineering.",
    "Describe a time you had to debug a production outage.",
    "How would you design a rate limiter for a public API?",
)


def tone_pcm16(duration_seconds: float = 0.1, sample_rate: int = 16000, freq: float = 440.0) -> bytes:
    """A short sine tone as PCM16 mono bytes."""
    t = np.arange(int(duration_seconds * sample_rate), dtype=np.float32) / sample_rate
    return encode_pcm16(0.3 * np.sin(2 * np.pi * freq * t))


class MockQuestionGenerator(QuestionGenerator):
    """Returns a fixed question list, optionally failing the first N calls."""

    def __init__(self,
                 questions: Sequence[str] = DEFAULT_QUESTIONS,
                 interview_type: InterviewType = InterviewType.MIXED,
                 fail_times: int = 0,
                 delay: float = 0.0):
        self.questions = tuple(questions)
        self.interview_type = interview_type
        self.fail_times = fail_times
        self.delay = delay
        self.requests: List[QuestionRequest] = []

    async def generate(self, request: QuestionRequest) -> QuestionSet:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("Mock question generation failure")
        return QuestionSet(questions=self.questions, interview_type=self.interview_type)


class MockSpeechSynthesizer(SpeechSynthesizer):
    """
    Synthesizes a short tone for any text.

    Failures and delays are configured per question text: ``fail_texts``
    always fail, ``fail_times`` fail that many times before succeeding.
    """

    sample_rate = 24000

    def __init__(self,
                 fail_texts: Sequence[str] = (),
                 fail_times: Optional[Dict[str, int]] = None,
                 delay: float = 0.0,
                 delays: Optional[Dict[str, float]] = None,
                 duration_seconds: float = 0.05):
        self.fail_texts = set(fail_texts)
        self.fail_times = dict(fail_times or {})
        self.delay = delay
        self.delays = dict(delays or {})
        self.duration_seconds = duration_seconds
        self.calls: List[str] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def calls_for(self, text: str) -> int:
        return self.calls.count(text)

    async def synthesize(self, text: str, voice: Voice) -> str:
        self.calls.append(text)
        delay = self.delays.get(text, self.delay)
        if delay:
            await asyncio.sleep(delay)
        if text in self.fail_texts:
            raise RuntimeError(f"Mock synthesis failure for '{text[:30]}'")
        if self.fail_times.get(text, 0) > 0:
            self.fail_times[text] -= 1
            raise RuntimeError(f"Mock transient synthesis failure for '{text[:30]}'")
        return base64.b64encode(tone_pcm16(self.duration_seconds, self.sample_rate)).decode("ascii")


class MockTranscriber(InterviewTranscriber):
    """Builds an alternating transcript from the pairs it is given."""

    def __init__(self, fail_times: int = 0, error: Optional[Exception] = None):
        self.fail_times = fail_times
        self.error = error
        self.calls: List[List[AnswerPair]] = []

    async def transcribe(self, pairs: Sequence[AnswerPair]) -> TranscriptionResult:
        self.calls.append(list(pairs))
        if self.error is not None:
            raise self.error
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("Mock transcription failure")

        transcript = []
        for i, (question, segment) in enumerate(pairs):
            transcript.append(TranscriptItem(speaker=Speaker.AI, text=question))
            answer = f"Mock answer {i + 1}." if segment is not None else PromptFormatter.NO_AUDIO_MARKER
            transcript.append(TranscriptItem(speaker=Speaker.USER, text=answer))
        return TranscriptionResult(
            transcript=transcript,
            audio_analysis=AudioAnalysis(
                confidence_score=78.0, clarity_score=82.0, pace="Moderate",
                tone="Confident", feedback="Clear and steady delivery."
            ),
        )


class MockContentAnalyzer(ContentAnalyzer):
    """Scores every AI/User pair in the transcript the same way."""

    def __init__(self, fail_times: int = 0, error: Optional[Exception] = None):
        self.fail_times = fail_times
        self.error = error
        self.calls: List[List[TranscriptItem]] = []

    async def analyze(self, transcript: List[TranscriptItem]) -> ContentAnalysis:
        self.calls.append(list(transcript))
        if self.error is not None:
            raise self.error
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("Mock content analysis failure")

        feedback = []
        for question, answer in zip(transcript[::2], transcript[1::2]):
            feedback.append(QuestionFeedback(
                question=question.text, user_answer=answer.text, score=70.0,
                feedback="Good structure, add a concrete example.",
                improved_answer="A stronger answer with a concrete example."
            ))
        return ContentAnalysis(
            overall_score=72.0,
            strengths=["Clear communication"],
            improvements=["Quantify impact"],
            question_feedback=feedback,
        )


class FakeAudioDevice(AudioDevice):
    """
    In-memory audio device.

    Records the order of playback and capture calls in ``log`` and sets
    ``overlap_detected`` if capture ever starts while playing (or vice versa).
    """

    target_rate = 16000

    def __init__(self,
                 fail_acquire: bool = False,
                 fail_capture: bool = False,
                 fail_playback: bool = False,
                 play_seconds: float = 0.0,
                 capture_audio: Optional[bytes] = None):
        self.fail_acquire = fail_acquire
        self.fail_capture = fail_capture
        self.fail_playback = fail_playback
        self.play_seconds = play_seconds
        self.capture_audio = tone_pcm16(0.1, self.target_rate) if capture_audio is None else capture_audio

        self.acquire_count = 0
        self.release_count = 0
        self.played: List[AudioBuffer] = []
        self.interrupted = 0
        self.log: List[str] = []
        self.overlap_detected = False
        self.playing = False
        self.capturing = False
        self._acquired = False
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_acquired(self) -> bool:
        return self._acquired

    def acquire(self) -> None:
        if self.fail_acquire:
            raise AudioDeviceError("Mock audio device unavailable")
        self._acquired = True
        self.acquire_count += 1
        self.log.append("acquire")

    def release(self) -> None:
        self._acquired = False
        self.release_count += 1
        self.log.append("release")

    async def play(self, buffer: AudioBuffer) -> None:
        if not self._acquired:
            raise AudioDeviceError("Audio device not acquired")
        if self.fail_playback:
            raise AudioDeviceError("Mock playback failure")
        if self.capturing:
            self.overlap_detected = True
        self.played.append(buffer)
        self.playing = True
        self.log.append("play_start")
        self._stop_event = asyncio.Event()
        try:
            if self.play_seconds > 0:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), self.play_seconds)
                except asyncio.TimeoutError:
                    pass
            else:
                await asyncio.sleep(0)
        finally:
            self.playing = False
            self.log.append("play_end")

    def stop_playback(self) -> None:
        if self.playing and self._stop_event is not None:
            self.interrupted += 1
            self._stop_event.set()

    def start_capture(self) -> None:
        if not self._acquired:
            raise AudioDeviceError("Audio device not acquired")
        if self.fail_capture:
            raise AudioDeviceError("Mock capture failure")
        if self.playing:
            self.overlap_detected = True
        self.capturing = True
        self.log.append("capture_start")

    def stop_capture(self) -> bytes:
        if not self.capturing:
            return b""
        self.capturing = False
        self.log.append("capture_stop")
        return self.capture_audio


class MockLLMClient:
    """Stands in for VertexRestClient in service tests."""

    def __init__(self, json_responses: Optional[List[Dict[str, Any]]] = None,
                 speech_audio: Optional[str] = None):
        self.json_responses = list(json_responses or [])
        self.speech_audio = speech_audio or base64.b64encode(tone_pcm16(0.05, 24000)).decode("ascii")
        self.request_history: List[Dict[str, Any]] = []

    def generate_json(self, parts, response_schema=None, model=None, temperature: float = 0.0) -> Dict[str, Any]:
        self.request_history.append({
            "parts": parts,
            "response_schema": response_schema,
            "model": model,
            "temperature": temperature,
        })
        if not self.json_responses:
            raise RuntimeError("MockLLMClient has no more responses")
        return self.json_responses.pop(0)

    def generate_speech(self, text: str, voice_name: str, model=None) -> str:
        self.request_history.append({"text": text, "voice_name": voice_name, "model": model})
        return self.speech_audio


def create_test_session(session_id: str = "test-session",
                        questions: Sequence[str] = DEFAULT_QUESTIONS) -> InterviewSession:
    """A stored-session record with metadata only, as created at interview completion."""
    return InterviewSession(
        id=session_id,
        role="Backend Engineer",
        company="General",
        date="2026-01-05T10:00:00",
        duration_seconds=300,
        question_count=len(questions),
        interview_type=InterviewType.MIXED,
        questions_list=list(questions),
    )
