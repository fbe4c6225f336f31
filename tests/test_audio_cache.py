import asyncio

import pytest

from voxinterview.interview import AudioCache, Voice
from voxinterview.interview.testing import MockSpeechSynthesizer


@pytest.mark.asyncio
async def test_concurrent_ensure_issues_one_synthesis_call():
    synthesizer = MockSpeechSynthesizer(delay=0.05)
    cache = AudioCache(synthesizer, Voice.FEMALE)

    buffers = await asyncio.gather(*[cache.ensure(5, "Question five") for _ in range(10)])

    assert synthesizer.call_count == 1
    assert cache.synthesis_calls == 1
    assert all(b is buffers[0] for b in buffers)
    assert 5 in cache
    assert cache.in_flight == frozenset()


@pytest.mark.asyncio
async def test_ensure_returns_cached_buffer_without_new_call():
    synthesizer = MockSpeechSynthesizer()
    cache = AudioCache(synthesizer, Voice.MALE)

    first = await cache.ensure(0, "Hello")
    second = await cache.ensure(0, "Hello")

    assert first is second
    assert synthesizer.call_count == 1
    assert first.sample_rate == synthesizer.sample_rate
    assert first.frame_count > 0


@pytest.mark.asyncio
async def test_ensure_joins_running_prefetch():
    synthesizer = MockSpeechSynthesizer(delay=0.05)
    cache = AudioCache(synthesizer, Voice.FEMALE)

    cache.prefetch(2, "Q2")
    assert cache.in_flight == frozenset({2})
    await cache.ensure(2, "Q2")

    assert synthesizer.calls_for("Q2") == 1


@pytest.mark.asyncio
async def test_failed_prefetch_is_retried_lazily():
    synthesizer = MockSpeechSynthesizer(fail_times={"Q1": 1})
    cache = AudioCache(synthesizer, Voice.FEMALE)

    cache.prefetch(1, "Q1")
    await asyncio.sleep(0.01)
    assert 1 not in cache
    assert 1 not in cache.in_flight

    buffer = await cache.ensure(1, "Q1")

    assert buffer.frame_count > 0
    assert synthesizer.calls_for("Q1") == 2


@pytest.mark.asyncio
async def test_ensure_propagates_synthesis_error():
    synthesizer = MockSpeechSynthesizer(fail_texts=["broken"])
    cache = AudioCache(synthesizer, Voice.FEMALE)

    with pytest.raises(RuntimeError):
        await cache.ensure(0, "broken")
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_fetch():
    synthesizer = MockSpeechSynthesizer(delay=0.05)
    cache = AudioCache(synthesizer, Voice.FEMALE)

    waiter = asyncio.ensure_future(cache.ensure(3, "Q3"))
    await asyncio.sleep(0.01)
    waiter.cancel()
    buffer = await cache.ensure(3, "Q3")

    assert buffer is cache.get(3)
    assert synthesizer.call_count == 1


@pytest.mark.asyncio
async def test_prefetch_ahead_schedules_next_indices_only():
    synthesizer = MockSpeechSynthesizer()
    cache = AudioCache(synthesizer, Voice.FEMALE)
    questions = ["Q0", "Q1", "Q2", "Q3", "Q4", "Q5"]

    cache.prefetch_ahead(1, questions, lookahead=3)
    assert cache.in_flight == frozenset({2, 3, 4})
    await asyncio.sleep(0.01)

    assert sorted(synthesizer.calls) == ["Q2", "Q3", "Q4"]
    assert len(cache) == 3


@pytest.mark.asyncio
async def test_prefetch_ahead_stops_at_last_question():
    cache = AudioCache(MockSpeechSynthesizer(), Voice.FEMALE)

    cache.prefetch_ahead(1, ["Q0", "Q1", "Q2"], lookahead=3)

    assert cache.in_flight == frozenset({2})


@pytest.mark.asyncio
async def test_close_cancels_fetches_and_discards_results():
    synthesizer = MockSpeechSynthesizer(delay=0.05)
    cache = AudioCache(synthesizer, Voice.FEMALE)

    cache.prefetch(1, "Q1")
    cache.prefetch(2, "Q2")
    await asyncio.sleep(0)
    cache.close()
    await asyncio.sleep(0.1)

    assert cache.closed
    assert len(cache) == 0
    assert cache.in_flight == frozenset()
    with pytest.raises(RuntimeError):
        await cache.ensure(1, "Q1")
