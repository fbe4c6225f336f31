"""
Audio processing, devices and speech synthesis for voxinterview.

This module contains all audio-related functionality organized into clear submodules:
- processing: PCM codecs, resampling, normalization and WAV I/O
- devices: speaker playback and microphone capture handles
- speech: Google Cloud text-to-speech
"""

from .processing import AudioBuffer, decode_pcm16_base64, pcm16_to_wav_bytes
from .devices import AudioDevice, AudioDeviceError, PyAudioDevice
from .speech import synthesize_linear16

__all__ = [
    "AudioBuffer",
    "decode_pcm16_base64",
    "pcm16_to_wav_bytes",
    "AudioDevice",
    "AudioDeviceError",
    "PyAudioDevice",
    "synthesize_linear16",
]
