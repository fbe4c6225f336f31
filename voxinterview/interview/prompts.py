"""
Interview prompt templates.

This module contains all the prompt templates used throughout the interview system,
keeping them separate from the business logic for easier maintenance and editing.
"""

from typing import List

from .models import QuestionRequest, TranscriptItem


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    @staticmethod
    def question_generation(request: QuestionRequest) -> str:
        """Prompt for generating the ordered question list."""
        at_company = f" at {request.company}" if request.company else ""
        description = f"Job Description: {request.job_description}" if request.job_description else ""
        context = f"Additional Context: {request.context}" if request.context else ""
        name = request.candidate_name

        return f"""
You are a hiring manager interviewing a candidate named {name} for a {request.role} position{at_company}.
{description}
{context}

Create a list of {request.question_count} interview questions for a {request.duration_minutes} minute interview.
Ensure all the questions are written in first perspective as the interviewer. Direct the questions to the candidate using "you" and "your",
do not frame questions from the perspective of the candidate (e.g. do NOT ask "Tell me about myself", it should be "tell me about yourself").
Feel free to address the candidate by name ({name}) in the first question (introduction) to make it personal.

Include a mix of introductory, behavioral, and technical questions appropriate for the role. Follow a traditional interview format given the context,
which typically starts with an introduction, asks about concepts or situations relevant to the role and company, and ends with asking the candidate
if they have any questions.

Return JSON with the list of questions and the overall type of interview.
        """.strip()

    @staticmethod
    def speech_instruction(text: str) -> str:
        """Instruction wrapped around question text for speech generation."""
        return f"You are an interviewer interviewing a candidate. Ask/Say this in a professional and polite tone: {text}"

    @staticmethod
    def transcription_intro() -> str:
        return """
You are an expert interview coach and transcriber.
I will provide a series of audio files, each corresponding to the candidate's answer to a specific interview question.
Transcribe the answers VERBATIM and reconstruct the conversation.
Analyze confidence, clarity, pace, and tone.
        """.strip()

    @staticmethod
    def transcription_outro() -> str:
        return "Return a JSON object matching the schema."

    @staticmethod
    def content_analysis(transcript: List[TranscriptItem]) -> str:
        """Prompt for scoring the content of a finished interview."""
        conversation = PromptFormatter.format_transcript(transcript)
        return f"""
You are an expert technical interviewer.
Analyze the following interview transcript for content quality.

TRANSCRIPT:
{conversation}

Provide a structured JSON evaluation.
For each question-answer pair found in the transcript, extract the user's answer verbatim, provide feedback, and an improved answer.
        """.strip()


class PromptFormatter:
    """Helper class for formatting prompt fragments."""

    NO_AUDIO_MARKER = "[No Audio Recorded]"

    @staticmethod
    def format_transcript(transcript: List[TranscriptItem]) -> str:
        return "\n\n".join(f"{t.speaker.value}: {t.text}" for t in transcript)

    @staticmethod
    def question_label(index: int, question: str) -> str:
        return f"Question {index + 1}: {question}"

    @staticmethod
    def answer_label(index: int, has_audio: bool) -> str:
        if has_audio:
            return f"Answer {index + 1} Audio:"
        return f"Answer {index + 1}: {PromptFormatter.NO_AUDIO_MARKER}"
