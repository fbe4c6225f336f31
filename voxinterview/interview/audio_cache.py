"""
Prefetching cache of synthesized question audio.

Buffers are keyed by question index and created at most once. A fetch that
is already running for an index is shared by every caller asking for it.
"""
import asyncio
import logging
from typing import Dict, FrozenSet, Optional, Sequence

from .models import Voice
from .services import SpeechSynthesizer
from ..config import PREFETCH_LOOKAHEAD
from ..infrastructure.audio import AudioBuffer, decode_pcm16_base64

logger = logging.getLogger("audio_cache")


class AudioCache:
    """Index -> decoded audio, with a registry of in-flight fetches."""

    def __init__(self, synthesizer: SpeechSynthesizer, voice: Voice):
        self.synthesizer = synthesizer
        self.voice = voice
        self._buffers: Dict[int, AudioBuffer] = {}
        self._in_flight: Dict[int, asyncio.Task] = {}
        self._closed = False
        self.synthesis_calls = 0

    def __contains__(self, index: int) -> bool:
        return index in self._buffers

    def __len__(self) -> int:
        return len(self._buffers)

    def get(self, index: int) -> Optional[AudioBuffer]:
        return self._buffers.get(index)

    @property
    def in_flight(self) -> FrozenSet[int]:
        return frozenset(self._in_flight)

    @property
    def closed(self) -> bool:
        return self._closed

    async def ensure(self, index: int, text: str) -> AudioBuffer:
        """
        Return the buffer for ``index``, fetching it if needed.

        Concurrent callers for the same index share one fetch. Cancelling a
        caller does not cancel the shared fetch.

        Raises:
            RuntimeError: If the cache was closed
            Exception: Whatever synthesis or decoding raised
        """
        buffer = self._buffers.get(index)
        if buffer is not None:
            return buffer
        return await asyncio.shield(self._fetch_task(index, text))

    def prefetch(self, index: int, text: str) -> None:
        """Start fetching ``index`` in the background, if not cached or running."""
        if self._closed or index in self._buffers or index in self._in_flight:
            return
        self._fetch_task(index, text)

    def prefetch_ahead(self, index: int, questions: Sequence[str],
                       lookahead: int = PREFETCH_LOOKAHEAD) -> None:
        """Schedule prefetch for the next ``lookahead`` questions after ``index``."""
        for i in range(index + 1, min(index + 1 + lookahead, len(questions))):
            self.prefetch(i, questions[i])

    def close(self) -> None:
        """Cancel outstanding fetches. Results that arrive afterwards are dropped."""
        self._closed = True
        for index, task in list(self._in_flight.items()):
            if not task.done():
                logger.debug(f"Cancelling fetch for question {index}")
                task.cancel()
        self._in_flight.clear()

    def _fetch_task(self, index: int, text: str) -> asyncio.Task:
        if self._closed:
            raise RuntimeError("Audio cache is closed")
        task = self._in_flight.get(index)
        if task is None:
            task = asyncio.ensure_future(self._fetch(index, text))
            task.add_done_callback(self._log_fetch_result)
            self._in_flight[index] = task
        return task

    async def _fetch(self, index: int, text: str) -> AudioBuffer:
        self.synthesis_calls += 1
        logger.debug(f"Synthesizing question {index}")
        try:
            data = await self.synthesizer.synthesize(text, self.voice)
            buffer = decode_pcm16_base64(data, self.synthesizer.sample_rate)
        finally:
            # A failed fetch leaves the index free so the next ensure() retries
            if self._in_flight.get(index) is asyncio.current_task():
                del self._in_flight[index]

        if self._closed:
            logger.debug(f"Discarding audio for question {index}, cache closed")
            return buffer
        self._buffers[index] = buffer
        logger.info(f"Cached audio for question {index} ({buffer.duration_seconds:.1f}s)")
        return buffer

    @staticmethod
    def _log_fetch_result(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Audio fetch failed, will retry when needed: {error}")
