"""Audio processing modules."""

from .processing import (
    AudioBuffer,
    decode_pcm16,
    decode_pcm16_base64,
    encode_pcm16,
    stereo_to_mono,
    remove_dc,
    resample,
    normalize_audio,
    write_wav,
    read_wav,
    pcm16_to_wav_bytes,
)

__all__ = [
    "AudioBuffer",
    "decode_pcm16",
    "decode_pcm16_base64",
    "encode_pcm16",
    "stereo_to_mono",
    "remove_dc",
    "resample",
    "normalize_audio",
    "write_wav",
    "read_wav",
    "pcm16_to_wav_bytes",
]
