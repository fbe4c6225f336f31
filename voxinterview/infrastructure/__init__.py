"""Infrastructure components for voxinterview.

This module contains low-level technical components that provide
foundational capabilities for the interview system. Session storage lives
in ``infrastructure.data`` and is imported from there directly, since it
depends on the interview data model.
"""

# Audio infrastructure
from .audio import (
    AudioBuffer, AudioDevice, AudioDeviceError, PyAudioDevice,
    decode_pcm16_base64, pcm16_to_wav_bytes, synthesize_linear16
)

# LLM infrastructure
from .llm import VertexRestClient

__all__ = [
    # Audio
    "AudioBuffer", "AudioDevice", "AudioDeviceError", "PyAudioDevice",
    "decode_pcm16_base64", "pcm16_to_wav_bytes",

    # Speech services
    "synthesize_linear16",

    # LLM client
    "VertexRestClient"
]
