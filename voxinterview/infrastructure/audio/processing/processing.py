"""
Basic audio processing: PCM16 codecs, resampling, normalization and WAV I/O.
"""
import base64
import binascii
import io
import math
import wave
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from scipy.signal import resample_poly

from ....config import TARGET_RMS


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded, playable mono audio: float32 samples in [-1.0, 1.0]."""
    samples: np.ndarray
    sample_rate: int

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / float(self.sample_rate)


def decode_pcm16(pcm16_bytes: bytes) -> np.ndarray:
    """Convert little-endian PCM16 bytes to float32 samples in [-1.0, 1.0]."""
    if len(pcm16_bytes) % 2:
        raise ValueError(f"PCM16 payload has odd byte length ({len(pcm16_bytes)})")
    data_int16 = np.frombuffer(pcm16_bytes, dtype="<i2")
    return (data_int16.astype(np.float32) / 32768.0)


def decode_pcm16_base64(data: str, sample_rate: int) -> AudioBuffer:
    """Decode a base64 PCM16 mono payload (as returned by speech synthesis) into a buffer."""
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 audio payload: {e}") from e
    return AudioBuffer(samples=decode_pcm16(raw), sample_rate=sample_rate)


def encode_pcm16(samples: np.ndarray) -> bytes:
    """Convert float samples in [-1.0, 1.0] to little-endian PCM16 bytes."""
    pcm16 = np.clip(np.asarray(samples, dtype=np.float32) * 32767, -32768, 32767).astype("<i2")
    return pcm16.tobytes()


def stereo_to_mono(x: np.ndarray) -> np.ndarray:
    """Convert stereo audio to mono by averaging channels."""
    return np.mean(x, axis=1)


def remove_dc(x: np.ndarray) -> np.ndarray:
    """Remove DC offset from audio signal."""
    if x.size == 0:
        return x
    return x - np.mean(x)


def resample(audio: np.ndarray, sr_from: int, sr_to: int) -> np.ndarray:
    """Resample audio between arbitrary integer rates."""
    if sr_from == sr_to or audio.size == 0:
        return audio.astype(np.float32)
    g = math.gcd(sr_from, sr_to)
    return resample_poly(audio, up=sr_to // g, down=sr_from // g).astype(np.float32)


def normalize_audio(audio: np.ndarray, target_rms: float = TARGET_RMS) -> np.ndarray:
    """Normalize audio to target RMS level."""
    if audio.size == 0:
        return audio
    rms = float(np.sqrt(np.mean(audio**2)) + 1e-9)
    gain = min(20.0, target_rms / rms) if rms > 0 else 1.0
    return audio * gain


def write_wav(path: str, pcm16: bytes, sr: int, channels: int = 1) -> None:
    """Write PCM16 audio data to WAV file."""
    with wave.open(path, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sr)
        wf.writeframes(pcm16)


def read_wav(path: str) -> Tuple[bytes, int]:
    """Read a mono PCM16 WAV file. Returns (pcm16_bytes, sample_rate)."""
    with wave.open(path, "rb") as wf:
        if wf.getsampwidth() != 2:
            raise ValueError(f"{path}: expected 16-bit samples, got {wf.getsampwidth() * 8}-bit")
        frames = wf.readframes(wf.getnframes())
        sr = wf.getframerate()
        if wf.getnchannels() > 1:
            stereo = np.frombuffer(frames, dtype="<i2").reshape(-1, wf.getnchannels())
            frames = stereo_to_mono(stereo.astype(np.float32)).astype("<i2").tobytes()
    return frames, sr


def pcm16_to_wav_bytes(pcm16: bytes, sr: int, channels: int = 1) -> bytes:
    """Wrap raw PCM16 bytes in an in-memory WAV container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sr)
        wf.writeframes(pcm16)
    return buf.getvalue()
