from voxinterview.interview import RecordingManager, EventType
from voxinterview.interview.testing import FakeAudioDevice


def make_recorder(event_bus=None, **device_kwargs):
    device = FakeAudioDevice(**device_kwargs)
    device.acquire()
    return RecordingManager(device, event_bus, "session-1"), device


def test_stop_appends_captured_segment(event_bus):
    recorder, device = make_recorder(event_bus)

    assert recorder.start() is True
    segment = recorder.stop()

    assert segment.question_index == 0
    assert segment.audio == device.capture_audio
    assert segment.sample_rate == device.target_rate
    assert not recorder.is_recording
    recorded = event_bus.of_type(EventType.ANSWER_RECORDED)
    assert recorded[0].data["empty"] is False


def test_start_twice_is_ignored():
    recorder, device = make_recorder()

    assert recorder.start() is True
    assert recorder.start() is False
    assert device.log.count("capture_start") == 1


def test_stop_without_recording_stores_empty_segment():
    recorder, _ = make_recorder()

    recorder.start()
    recorder.stop()
    segment = recorder.stop()

    assert segment.is_empty
    assert [s.question_index for s in recorder.segments] == [0, 1]


def test_capture_failure_reports_error_and_keeps_count(event_bus):
    recorder, _ = make_recorder(event_bus, fail_capture=True)

    assert recorder.start() is False
    segment = recorder.stop()

    assert segment.is_empty
    assert len(recorder.segments) == 1
    errors = event_bus.of_type(EventType.ERROR_OCCURRED)
    assert errors[0].data["component"] == "recording"


def test_discard_stops_capture_without_storing():
    recorder, device = make_recorder()

    recorder.start()
    recorder.discard()

    assert not device.capturing
    assert recorder.segments == []


def test_concatenated_audio_joins_segments_in_order():
    recorder, device = make_recorder(capture_audio=b"\x01\x00\x02\x00")

    for _ in range(3):
        recorder.start()
        recorder.stop()

    combined = recorder.concatenated_audio()
    assert combined.audio == device.capture_audio * 3
    assert combined.duration_seconds == 6 / device.target_rate


def test_segments_is_a_copy():
    recorder, _ = make_recorder()
    recorder.start()
    recorder.stop()

    recorder.segments.clear()

    assert len(recorder.segments) == 1
