import asyncio
import time
import types

import numpy as np
import pytest

from voxinterview.infrastructure.audio.devices import PyAudioDevice
from voxinterview.infrastructure.audio.processing import AudioBuffer


class FakeOutputStream:
    def __init__(self):
        self.writes = 0
        self.closed = False

    def write(self, data):
        time.sleep(0.02)
        self.writes += 1

    def stop_stream(self):
        pass

    def close(self):
        self.closed = True


class FakePortAudio:
    """Records whether terminate() ran while an output stream was still open."""

    def __init__(self):
        self.streams = []
        self.terminated = False
        self.open_at_terminate = None

    def open(self, **kwargs):
        stream = FakeOutputStream()
        self.streams.append(stream)
        return stream

    def terminate(self):
        self.terminated = True
        self.open_at_terminate = sum(1 for s in self.streams if not s.closed)


def make_device():
    device = PyAudioDevice()
    device._pa = FakePortAudio()
    device._pyaudio = types.SimpleNamespace(paInt16=8, paContinue=0)
    return device


@pytest.mark.asyncio
async def test_release_waits_for_cancelled_playback_thread():
    device = make_device()
    pa = device._pa
    task = asyncio.ensure_future(device.play(AudioBuffer(np.zeros(24000, dtype=np.float32), 24000)))
    while not pa.streams or pa.streams[0].writes == 0:
        await asyncio.sleep(0.005)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    device.release()

    assert pa.terminated
    assert pa.open_at_terminate == 0
    assert pa.streams[0].writes < 10
    assert not device.is_acquired


def test_release_without_playback_terminates_immediately():
    device = make_device()
    pa = device._pa

    started = time.monotonic()
    device.release()
    device.release()

    assert time.monotonic() - started < 1.0
    assert pa.terminated
    assert pa.open_at_terminate == 0
