"""
Audio device handles: speaker playback and microphone capture.

A device is a scoped resource. It is acquired once when an interview is
prepared and released by the session teardown, whatever the exit path.
"""
import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from ...config import (
    CHANNELS, SAMPLE_RATE_CAPTURE, SAMPLE_RATE_TARGET, FRAME_MS,
    MIC_GAIN, TARGET_RMS, PLAYBACK_CHUNK_SAMPLES, PLAYBACK_DRAIN_TIMEOUT
)
from ...utils import with_suppressed_audio_warnings
from .processing import (
    AudioBuffer, decode_pcm16, encode_pcm16, stereo_to_mono,
    remove_dc, resample, normalize_audio
)

logger = logging.getLogger("audio_devices")


class AudioDeviceError(RuntimeError):
    """Raised when the audio input/output cannot be acquired or used."""


class AudioDevice(ABC):
    """Playback and capture on one acquired pair of audio endpoints."""

    target_rate: int = SAMPLE_RATE_TARGET

    @property
    @abstractmethod
    def is_acquired(self) -> bool:
        """Whether the device handles are currently held."""

    @abstractmethod
    def acquire(self) -> None:
        """Open the device handles. Raises AudioDeviceError on failure."""

    @abstractmethod
    def release(self) -> None:
        """Close the device handles. Safe to call more than once."""

    @abstractmethod
    async def play(self, buffer: AudioBuffer) -> None:
        """Play a buffer, returning when playback finished or was stopped."""

    @abstractmethod
    def stop_playback(self) -> None:
        """Interrupt any playback in progress."""

    @abstractmethod
    def start_capture(self) -> None:
        """Begin recording from the input into a fresh buffer."""

    @abstractmethod
    def stop_capture(self) -> bytes:
        """Finish recording. Returns PCM16 mono bytes at ``target_rate``."""


def get_best_input_config(pa, preferred_index: Optional[int] = None):
    """
    Pick the microphone device and its capture rate.
    Returns (device_index, sample_rate) or raises AudioDeviceError.
    """
    if preferred_index is not None:
        info = pa.get_device_info_by_index(preferred_index)
        if int(info.get('maxInputChannels', 0)) <= 0:
            raise AudioDeviceError(f"Device {preferred_index} ({info.get('name')}) has no input channels")
        return preferred_index, int(info.get('defaultSampleRate', SAMPLE_RATE_CAPTURE))

    try:
        info = pa.get_default_input_device_info()
        logger.info(f"Using default input device {info['index']}: {info['name']}")
        return int(info['index']), int(info.get('defaultSampleRate', SAMPLE_RATE_CAPTURE))
    except (IOError, OSError):
        logger.warning("No default input device, scanning all devices")

    for i in range(pa.get_device_count()):
        info = pa.get_device_info_by_index(i)
        if int(info.get('maxInputChannels', 0)) > 0:
            logger.info(f"Found input device at index {i}: {info['name']}")
            return i, int(info.get('defaultSampleRate', SAMPLE_RATE_CAPTURE))

    raise AudioDeviceError("No microphone found")


class PyAudioDevice(AudioDevice):
    """Speaker and microphone through PortAudio."""

    def __init__(self,
                 input_device: Optional[int] = None,
                 output_device: Optional[int] = None,
                 num_channels: int = CHANNELS,
                 sr_capture: Optional[int] = None,
                 frame_ms: int = FRAME_MS,
                 mic_gain: float = MIC_GAIN,
                 sr_target: int = SAMPLE_RATE_TARGET,
                 target_rms: float = TARGET_RMS):
        self.input_device = input_device
        self.output_device = output_device
        self.num_channels = num_channels
        self.sr_capture = sr_capture
        self.frame_ms = frame_ms
        self.mic_gain = mic_gain
        self.target_rate = sr_target
        self.target_rms = target_rms

        self._pa = None
        self._pyaudio = None
        self._input_stream = None
        self._frames: List[bytes] = []
        self._frames_lock = threading.Lock()
        self._stop_playback = threading.Event()
        self._playing = False
        self._playback_idle = threading.Event()
        self._playback_idle.set()

    @property
    def is_acquired(self) -> bool:
        return self._pa is not None

    @with_suppressed_audio_warnings
    def acquire(self) -> None:
        if self._pa is not None:
            return
        try:
            # Lazy import so the package imports without PortAudio installed
            import pyaudio
        except ImportError as e:
            raise AudioDeviceError(f"PyAudio is not installed: {e}") from e

        pa = pyaudio.PyAudio()
        try:
            index, rate = get_best_input_config(pa, self.input_device)
        except Exception as e:
            pa.terminate()
            if isinstance(e, AudioDeviceError):
                raise
            raise AudioDeviceError(f"Microphone configuration failed: {e}") from e

        self._pyaudio = pyaudio
        self._pa = pa
        self.input_device = index
        if self.sr_capture is None:
            self.sr_capture = rate
        logger.info(f"Acquired audio device: input={index} rate={self.sr_capture}Hz channels={self.num_channels}")

    def release(self) -> None:
        # The playback thread must close its stream before PortAudio terminates
        self._stop_playback.set()
        if not self._playback_idle.wait(PLAYBACK_DRAIN_TIMEOUT):
            logger.warning("Playback thread did not finish before release")
        if self._input_stream is not None:
            self._close_input_stream()
        if self._pa is not None:
            try:
                self._pa.terminate()
            except Exception as e:
                logger.warning(f"Error terminating PortAudio: {e}")
            self._pa = None
            logger.info("Released audio device")

    def _require(self):
        if self._pa is None:
            raise AudioDeviceError("Audio device not acquired")
        return self._pa

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    async def play(self, buffer: AudioBuffer) -> None:
        pa = self._require()
        if buffer.frame_count == 0:
            return
        self._stop_playback.clear()
        self._playback_idle.clear()
        self._playing = True
        try:
            await asyncio.to_thread(self._play_blocking, pa, buffer)
        except asyncio.CancelledError:
            self._stop_playback.set()
            raise
        finally:
            self._playing = False

    @with_suppressed_audio_warnings
    def _open_output(self, pa, sample_rate: int):
        return pa.open(format=self._pyaudio.paInt16, channels=1, rate=sample_rate,
                       output=True, output_device_index=self.output_device)

    def _play_blocking(self, pa, buffer: AudioBuffer) -> None:
        try:
            if self._stop_playback.is_set():
                return
            pcm = encode_pcm16(buffer.samples)
            chunk_bytes = PLAYBACK_CHUNK_SAMPLES * 2
            stream = self._open_output(pa, buffer.sample_rate)
            try:
                for start in range(0, len(pcm), chunk_bytes):
                    if self._stop_playback.is_set():
                        logger.debug("Playback interrupted")
                        break
                    stream.write(pcm[start:start + chunk_bytes])
            finally:
                stream.stop_stream()
                stream.close()
        finally:
            self._playback_idle.set()

    def stop_playback(self) -> None:
        if self._playing:
            self._stop_playback.set()

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def _on_frames(self, in_data, frame_count, time_info, status):
        with self._frames_lock:
            self._frames.append(in_data)
        return (None, self._pyaudio.paContinue)

    @with_suppressed_audio_warnings
    def start_capture(self) -> None:
        pa = self._require()
        if self._input_stream is not None:
            return
        # Half-duplex: never capture over our own playback
        self.stop_playback()
        with self._frames_lock:
            self._frames = []
        frame_size = int(self.sr_capture * self.frame_ms / 1000)
        try:
            self._input_stream = pa.open(format=self._pyaudio.paInt16,
                                         channels=self.num_channels,
                                         rate=self.sr_capture,
                                         input=True,
                                         input_device_index=self.input_device,
                                         frames_per_buffer=frame_size,
                                         stream_callback=self._on_frames)
            self._input_stream.start_stream()
        except Exception as e:
            self._input_stream = None
            raise AudioDeviceError(f"Failed to open microphone: {e}") from e
        logger.debug("Microphone capture started")

    def _close_input_stream(self) -> None:
        try:
            self._input_stream.stop_stream()
            self._input_stream.close()
        except Exception as e:
            logger.warning(f"Error closing microphone stream: {e}")
        self._input_stream = None

    def stop_capture(self) -> bytes:
        if self._input_stream is None:
            return b""
        self._close_input_stream()
        with self._frames_lock:
            raw = b"".join(self._frames)
            self._frames = []
        if not raw:
            logger.warning("No audio captured")
            return b""

        data = decode_pcm16(raw)
        if self.num_channels > 1:
            data = stereo_to_mono(data.reshape(-1, self.num_channels))
        mono = remove_dc(data * self.mic_gain)
        mono = resample(mono, self.sr_capture, self.target_rate)
        mono = normalize_audio(mono, self.target_rms)
        logger.info(f"Captured {len(raw) / 2 / self.num_channels / self.sr_capture:.1f}s of audio")
        return encode_pcm16(mono)
