"""
On-disk workspace for one interview's recorded answers.

Each answer is saved as ``answer_XX.wav`` next to a ``session.wav`` with all
answers concatenated, so a session can be reviewed per question and its
analysis resumed after a restart.
"""
import os
import glob
import logging
from typing import List

from ..audio.processing import write_wav, read_wav
from ...interview.models import AnswerSegment

logger = logging.getLogger("workspace")


class SessionWorkspace:
    """Directory ``<workdir>/<session_id>`` holding answer WAVs."""

    def __init__(self, workdir: str, session_id: str):
        self.workdir = workdir
        self.session_id = session_id
        self.path = os.path.join(workdir, session_id)

    def answer_path(self, index: int) -> str:
        return os.path.join(self.path, f"answer_{index:02d}.wav")

    @property
    def session_audio_path(self) -> str:
        return os.path.join(self.path, "session.wav")

    def exists(self) -> bool:
        return os.path.isdir(self.path)

    def save_segments(self, segments: List[AnswerSegment]) -> List[str]:
        """Write every segment (empty ones included) plus the concatenated track."""
        os.makedirs(self.path, exist_ok=True)
        paths = []
        for segment in segments:
            path = self.answer_path(segment.question_index)
            write_wav(path, segment.audio, segment.sample_rate)
            paths.append(path)
        if segments:
            write_wav(self.session_audio_path,
                      b"".join(s.audio for s in segments), segments[0].sample_rate)
        logger.info(f"Saved {len(paths)} answers to {self.path}")
        return paths

    def load_segments(self) -> List[AnswerSegment]:
        """Read back the answers saved for this session, ordered by question."""
        if not self.exists():
            logger.warning(f"No workspace for session {self.session_id}")
            return []
        segments = []
        for path in sorted(glob.glob(os.path.join(self.path, "answer_*.wav"))):
            name = os.path.splitext(os.path.basename(path))[0]
            try:
                index = int(name.split("_", 1)[1])
            except (IndexError, ValueError):
                logger.warning(f"Skipping unexpected file {path}")
                continue
            pcm16, sample_rate = read_wav(path)
            segments.append(AnswerSegment(question_index=index, audio=pcm16, sample_rate=sample_rate))
        segments.sort(key=lambda s: s.question_index)
        logger.info(f"Loaded {len(segments)} answers from {self.path}")
        return segments
