import json
import threading

import pytest

from voxinterview.interview import ContentAnalysis, Speaker, TranscriptItem
from voxinterview.interview.testing import create_test_session
from voxinterview.infrastructure.data import (
    InMemoryProfileStore, JsonProfileStore, SessionNotFoundError, SessionWorkspace
)
from voxinterview.interview.models import AnswerSegment


@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryProfileStore()
    return JsonProfileStore(str(tmp_path / "store" / "sessions.json"))


def test_get_unknown_raises(any_store):
    with pytest.raises(SessionNotFoundError) as excinfo:
        any_store.get("nope")

    assert excinfo.value.session_id == "nope"
    assert "nope" in str(excinfo.value)


def test_upsert_replaces_only_matching_record(any_store):
    first = create_test_session("a")
    second = create_test_session("b")
    any_store.upsert(first)
    any_store.upsert(second)

    updated = any_store.get("a")
    updated.transcript = [TranscriptItem(Speaker.AI, "Q"), TranscriptItem(Speaker.USER, "A")]
    any_store.upsert(updated)

    assert any_store.get("a").transcript == updated.transcript
    assert any_store.get("b").to_dict() == second.to_dict()
    assert len(any_store.list_sessions()) == 2


def test_reads_are_copies(any_store):
    any_store.upsert(create_test_session("a"))

    record = any_store.get("a")
    record.content_analysis = ContentAnalysis(overall_score=10.0)

    assert any_store.get("a").content_analysis is None


def test_list_is_most_recent_first(any_store):
    older = create_test_session("old")
    newer = create_test_session("new")
    newer.date = "2026-02-01T09:00:00"
    any_store.upsert(older)
    any_store.upsert(newer)

    assert [s.id for s in any_store.list_sessions()] == ["new", "old"]


def test_json_store_persists_across_instances(tmp_path):
    path = str(tmp_path / "sessions.json")
    JsonProfileStore(path).upsert(create_test_session("a"))

    reopened = JsonProfileStore(path)

    assert reopened.get("a").role == "Backend Engineer"
    with open(path, encoding="utf-8") as f:
        assert json.load(f)[0]["id"] == "a"


def test_json_store_rejects_corrupted_file(tmp_path):
    path = tmp_path / "sessions.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(RuntimeError, match="corrupted"):
        JsonProfileStore(str(path)).list_sessions()


def test_json_store_concurrent_upserts_keep_every_record(tmp_path):
    store = JsonProfileStore(str(tmp_path / "sessions.json"))
    threads = [threading.Thread(target=store.upsert, args=(create_test_session(f"s{i}"),))
               for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(s.id for s in store.list_sessions()) == [f"s{i}" for i in range(8)]
    assert not [p for p in tmp_path.iterdir() if p.name.startswith(".sessions-")]


def test_workspace_round_trips_answers(tmp_path):
    workspace = SessionWorkspace(str(tmp_path), "s1")
    segments = [
        AnswerSegment(question_index=0, audio=b"\x01\x00\x02\x00", sample_rate=16000),
        AnswerSegment(question_index=1, audio=b"", sample_rate=16000),
    ]

    paths = workspace.save_segments(segments)
    loaded = workspace.load_segments()

    assert paths == [workspace.answer_path(0), workspace.answer_path(1)]
    assert [s.question_index for s in loaded] == [0, 1]
    assert loaded[0].audio == segments[0].audio
    assert loaded[1].is_empty


def test_workspace_missing_directory_loads_nothing(tmp_path):
    assert SessionWorkspace(str(tmp_path), "missing").load_segments() == []
