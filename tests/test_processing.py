import base64
import io
import wave

import numpy as np
import pytest

from voxinterview.infrastructure.audio.processing import (
    decode_pcm16, decode_pcm16_base64, encode_pcm16, resample, normalize_audio,
    pcm16_to_wav_bytes, write_wav, read_wav
)


def test_decode_pcm16_scales_to_unit_range():
    samples = decode_pcm16(np.array([0, 16384, -32768], dtype="<i2").tobytes())

    assert samples.dtype == np.float32
    assert samples.tolist() == [0.0, 0.5, -1.0]


def test_decode_pcm16_rejects_odd_length():
    with pytest.raises(ValueError):
        decode_pcm16(b"\x00\x01\x02")


def test_decode_base64_payload():
    payload = base64.b64encode(np.zeros(240, dtype="<i2").tobytes()).decode("ascii")

    buffer = decode_pcm16_base64(payload, 24000)

    assert buffer.frame_count == 240
    assert buffer.duration_seconds == pytest.approx(0.01)


def test_decode_base64_rejects_garbage():
    with pytest.raises(ValueError):
        decode_pcm16_base64("not base64!!", 24000)


def test_encode_pcm16_clips():
    pcm = encode_pcm16(np.array([2.0, -2.0, 0.0], dtype=np.float32))

    assert np.frombuffer(pcm, dtype="<i2").tolist() == [32767, -32768, 0]


def test_resample_changes_length():
    audio = np.zeros(48000, dtype=np.float32)

    assert resample(audio, 48000, 16000).shape[0] == 16000
    assert resample(audio, 16000, 16000) is not None


def test_normalize_audio_handles_silence():
    silent = np.zeros(100, dtype=np.float32)

    assert np.all(normalize_audio(silent) == 0)


def test_wav_bytes_have_header():
    pcm = np.arange(10, dtype="<i2").tobytes()

    with wave.open(io.BytesIO(pcm16_to_wav_bytes(pcm, 16000)), "rb") as wf:
        assert wf.getframerate() == 16000
        assert wf.readframes(wf.getnframes()) == pcm


def test_wav_file_round_trip(tmp_path):
    path = str(tmp_path / "answer.wav")
    pcm = np.arange(32, dtype="<i2").tobytes()

    write_wav(path, pcm, 16000)

    assert read_wav(path) == (pcm, 16000)
