from voxinterview.interview import (
    InterviewEventBus, InterviewMetrics, EventType, QuestionStartedEvent, AnswerRecordedEvent,
    SessionAbandonedEvent
)


def test_subscribers_receive_matching_events():
    bus = InterviewEventBus()
    started, everything = [], []
    bus.subscribe(EventType.QUESTION_STARTED, started.append)
    bus.subscribe_all(everything.append)

    bus.emit(QuestionStartedEvent("s1", 0, "Q1", 3))
    bus.emit(AnswerRecordedEvent("s1", 0, 1.5, False))

    assert [e.data["question"] for e in started] == ["Q1"]
    assert [e.event_type for e in everything] == [EventType.QUESTION_STARTED, EventType.ANSWER_RECORDED]


def test_failing_handler_does_not_stop_others():
    bus = InterviewEventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(EventType.SESSION_ABANDONED, broken)
    bus.subscribe_all(received.append)

    bus.emit(SessionAbandonedEvent("s1", "interviewing", 1))

    assert len(received) == 1


def test_unsubscribe_and_clear():
    bus = InterviewEventBus()
    received = []
    bus.subscribe(EventType.QUESTION_STARTED, received.append)
    bus.unsubscribe(EventType.QUESTION_STARTED, received.append)
    bus.unsubscribe(EventType.QUESTION_STARTED, received.append)

    bus.emit(QuestionStartedEvent("s1", 0, "Q1", 3))
    bus.subscribe_all(received.append)
    bus.clear_handlers()
    bus.emit(QuestionStartedEvent("s1", 0, "Q1", 3))

    assert received == []


def test_metrics_count_events():
    metrics = InterviewMetrics()
    metrics.handle_event(QuestionStartedEvent("s1", 0, "Q1", 3))
    metrics.handle_event(AnswerRecordedEvent("s1", 0, 0.0, True))
    metrics.handle_event(SessionAbandonedEvent("s1", "interviewing", 0))

    snapshot = metrics.get_metrics()
    assert snapshot["questions_asked"] == 1
    assert snapshot["empty_answers"] == 1
    assert snapshot["sessions_abandoned"] == 1

    metrics.reset()
    assert all(v == 0 for v in metrics.get_metrics().values())
