import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from voxinterview.interview import InterviewConfig, InterviewEventBus
from voxinterview.interview.testing import (
    DEFAULT_QUESTIONS, FakeAudioDevice, MockQuestionGenerator, MockSpeechSynthesizer,
    MockTranscriber, MockContentAnalyzer, create_test_session
)
from voxinterview.infrastructure.data import InMemoryProfileStore


class RecordingBus(InterviewEventBus):
    """Event bus that also keeps every emitted event."""

    def __init__(self):
        super().__init__()
        self.events = []
        self.subscribe_all(self.events.append)

    def of_type(self, event_type):
        return [e for e in self.events if e.event_type == event_type]


@pytest.fixture
def questions():
    return DEFAULT_QUESTIONS


@pytest.fixture
def interview_config():
    return InterviewConfig(role="Backend Engineer", duration_minutes=5)


@pytest.fixture
def event_bus():
    return RecordingBus()


@pytest.fixture
def device():
    return FakeAudioDevice()


@pytest.fixture
def generator(questions):
    return MockQuestionGenerator(questions)


@pytest.fixture
def synthesizer():
    return MockSpeechSynthesizer()


@pytest.fixture
def store():
    return InMemoryProfileStore()


@pytest.fixture
def transcriber():
    return MockTranscriber()


@pytest.fixture
def content_analyzer():
    return MockContentAnalyzer()


@pytest.fixture
def stored_session(store, questions):
    session = create_test_session("session-1", questions)
    store.upsert(session)
    return session
