"""
voxinterview Configuration System
=================================

This file contains ALL configuration for the voxinterview mock interview system.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the interview
# =============================================================================

# REQUIRED: Set your Google Cloud project
GOOGLE_CLOUD_PROJECT = "your-project-id"  # Change this!
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Interview settings
DEFAULT_DURATION_MINUTES = 10
DEFAULT_VOICE = "Female"
DEFAULT_CANDIDATE_NAME = "Candidate"
WORKDIR = "./_interviews"

# Speech settings ("gemini" or "google_cloud")
TTS_BACKEND = "gemini"

# Session records
PROFILE_STORE_PATH = "./_interviews/sessions.json"

# Logging
LOG_FILE = "./_interviews/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Interview shape
MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 60
MINUTES_PER_QUESTION = 2.5
MIN_QUESTION_COUNT = 3

# Turn taking
PREFETCH_LOOKAHEAD = 3
FIRST_QUESTION_AUDIO_TIMEOUT = 20.0
TURN_AUDIO_TIMEOUT = None  # later questions rely on LLM_TIMEOUT

# Audio capture
SAMPLE_RATE_CAPTURE = 48000
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
FRAME_MS = 30
MIC_GAIN = 1.0
TARGET_RMS = 0.06

# Audio playback
PLAYBACK_CHUNK_SAMPLES = 2400
PLAYBACK_DRAIN_TIMEOUT = 2.0  # seconds release() waits for the playback thread
GEMINI_TTS_SAMPLE_RATE = 24000
GOOGLE_TTS_SAMPLE_RATE = 24000

# Voice selection per synthesis backend
GEMINI_VOICES = {
    "Male": "Puck",
    "Female": "Kore",
}
GOOGLE_CLOUD_VOICES = {
    "Male": "en-US-Neural2-D",
    "Female": "en-US-Neural2-G",
}
LANGUAGE_CODE = "en-US"

# LLM
VERTEX_LOCATION = "us-central1"
QUESTION_MODEL = "gemini-2.5-pro"
TTS_MODEL = "gemini-2.5-flash-preview-tts"
TRANSCRIPTION_MODEL = "gemini-2.5-flash"
CONTENT_MODEL = "gemini-2.5-pro"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 8192


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    google_cloud_project: str
    google_application_credentials: Optional[str] = None
    vertex_location: str = VERTEX_LOCATION
    question_model: str = QUESTION_MODEL
    tts_model: str = TTS_MODEL
    transcription_model: str = TRANSCRIPTION_MODEL
    content_model: str = CONTENT_MODEL
    tts_backend: str = TTS_BACKEND
    workdir: str = WORKDIR
    profile_store_path: str = PROFILE_STORE_PATH
    prefetch_lookahead: int = PREFETCH_LOOKAHEAD
    first_question_audio_timeout: float = FIRST_QUESTION_AUDIO_TIMEOUT
    turn_audio_timeout: Optional[float] = TURN_AUDIO_TIMEOUT
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL


def get_config() -> Config:
    """Load configuration."""
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    credentials = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS

    if project == "your-project-id":
        raise ValueError("Please set GOOGLE_CLOUD_PROJECT in config.py or as environment variable")

    tts_backend = os.getenv("VOXINTERVIEW_TTS_BACKEND") or TTS_BACKEND
    if tts_backend not in ("gemini", "google_cloud"):
        raise ValueError(f"Unknown TTS backend '{tts_backend}' (expected 'gemini' or 'google_cloud')")

    workdir = os.getenv("VOXINTERVIEW_WORKDIR") or WORKDIR
    return Config(
        google_cloud_project=project,
        google_application_credentials=credentials,
        tts_backend=tts_backend,
        workdir=workdir,
        profile_store_path=os.getenv("VOXINTERVIEW_STORE") or os.path.join(workdir, "sessions.json"),
        log_file=os.path.join(workdir, "interview.log"),
        log_level=os.getenv("VOXINTERVIEW_LOG_LEVEL") or LOG_LEVEL,
    )
