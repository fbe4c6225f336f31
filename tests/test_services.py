import base64

import pytest

from voxinterview.interview import (
    GeminiQuestionGenerator, GeminiSpeechSynthesizer, GeminiInterviewTranscriber,
    GeminiContentAnalyzer, QuestionRequest, Voice, Speaker, TranscriptItem, build_answer_pairs
)
from voxinterview.interview.models import AnswerSegment
from voxinterview.interview.prompts import PromptFormatter
from voxinterview.interview.schemas import QUESTIONS_SCHEMA, CONTENT_ANALYSIS_SCHEMA
from voxinterview.interview.testing import MockLLMClient, tone_pcm16
from voxinterview.infrastructure.llm.client import extract_json_object


@pytest.mark.asyncio
async def test_question_generator_sends_schema_and_parses():
    client = MockLLMClient([{"questions": ["Q1", "Q2", "Q3"], "type": "Technical"}])
    generator = GeminiQuestionGenerator(client, model="gemini-test")
    request = QuestionRequest(role="SRE", duration_minutes=5, question_count=3, company="Acme")

    result = await generator.generate(request)

    assert result.questions == ("Q1", "Q2", "Q3")
    sent = client.request_history[0]
    assert sent["response_schema"] is QUESTIONS_SCHEMA
    assert sent["model"] == "gemini-test"
    assert sent["temperature"] == 0.7
    assert "SRE position at Acme" in sent["parts"]
    assert "3 interview questions" in sent["parts"]


@pytest.mark.asyncio
async def test_question_generator_rejects_malformed_response():
    generator = GeminiQuestionGenerator(MockLLMClient([{"items": []}]))

    with pytest.raises(ValueError):
        await generator.generate(QuestionRequest(role="SRE", duration_minutes=5, question_count=3))


@pytest.mark.asyncio
async def test_speech_synthesizer_maps_voice():
    client = MockLLMClient()
    synthesizer = GeminiSpeechSynthesizer(client)

    audio = await synthesizer.synthesize("Tell me about yourself.", Voice.MALE)

    assert audio == client.speech_audio
    assert client.request_history[0]["voice_name"] == "Puck"
    assert "Tell me about yourself." in client.request_history[0]["text"]


@pytest.mark.asyncio
async def test_speech_synthesizer_rejects_empty_text():
    with pytest.raises(ValueError):
        await GeminiSpeechSynthesizer(MockLLMClient()).synthesize("   ", Voice.FEMALE)


def test_transcriber_parts_interleave_questions_and_audio():
    segments = [AnswerSegment(question_index=0, audio=tone_pcm16(0.05), sample_rate=16000)]
    pairs = build_answer_pairs(["Q1", "Q2"], segments)

    parts = GeminiInterviewTranscriber(MockLLMClient()).build_parts(pairs)

    texts = [p.get("text") for p in parts]
    assert texts[1] == "Question 1: Q1"
    assert texts[2] == "Answer 1 Audio:"
    inline = parts[3]["inlineData"]
    assert inline["mimeType"] == "audio/wav"
    assert base64.b64decode(inline["data"])[:4] == b"RIFF"
    assert texts[4] == "Question 2: Q2"
    assert texts[5] == f"Answer 2: {PromptFormatter.NO_AUDIO_MARKER}"
    assert len(parts) == 7


@pytest.mark.asyncio
async def test_transcriber_parses_response():
    client = MockLLMClient([{
        "transcript": [{"role": "AI", "text": "Q1"}, {"role": "User", "text": "I led the migration."}],
        "audioAnalysis": {"confidenceScore": 70, "clarityScore": 80, "pace": "Moderate",
                          "tone": "Calm", "feedback": "Good."},
    }])

    result = await GeminiInterviewTranscriber(client).transcribe(build_answer_pairs(["Q1"], None))

    assert result.transcript[1].speaker is Speaker.USER
    assert result.audio_analysis.clarity_score == 80.0


@pytest.mark.asyncio
async def test_content_analyzer_formats_transcript():
    client = MockLLMClient([{"overallScore": 64, "strengths": [], "improvements": ["Be concise"],
                             "questionFeedback": []}])
    transcript = [TranscriptItem(Speaker.AI, "Q1"), TranscriptItem(Speaker.USER, "A1")]

    result = await GeminiContentAnalyzer(client).analyze(transcript)

    assert result.overall_score == 64.0
    sent = client.request_history[0]
    assert sent["response_schema"] is CONTENT_ANALYSIS_SCHEMA
    assert "AI: Q1\n\nUser: A1" in sent["parts"]


@pytest.mark.asyncio
async def test_content_analyzer_rejects_empty_transcript():
    client = MockLLMClient()

    with pytest.raises(ValueError):
        await GeminiContentAnalyzer(client).analyze([])
    assert client.request_history == []


def test_extract_json_object_from_wrapped_text():
    assert extract_json_object('```json\n{"a": 1}\n```') == {"a": 1}
    assert extract_json_object('{"b": [1, 2]}') == {"b": [1, 2]}
    with pytest.raises(ValueError):
        extract_json_object("no json here")
