"""타임라인 편집(교체/텍스트/선택 싱크/현재 자막) 테스트"""
import pytest

from backend.app.schemas import Caption, TimingUpdate
from backend.app.services.timeline import CaptionTimeline, ensure_unique_ids


def _timeline():
    return CaptionTimeline([
        Caption(id="1", start_time=0.0, end_time=1.5, text="first one"),
        Caption(id="2", start_time=1.5, end_time=3.0, text="second one"),
        Caption(id="3", start_time=3.0, end_time=4.0, text="third one"),
    ])


def test_selective_resync_only_touches_matched_timing():
    tl = _timeline()
    before = {c.id: c.model_dump_json() for c in tl}

    changed = tl.apply_timings([TimingUpdate(id="2", start_time=3.1, end_time=4.0)], ids={"2"})

    assert changed == 1
    c2 = tl.get("2")
    assert (c2.start_time, c2.end_time, c2.text) == (3.1, 4.0, "second one")
    assert tl.get("1").model_dump_json() == before["1"]
    assert tl.get("3").model_dump_json() == before["3"]


def test_resync_ignores_ids_outside_selection_and_unknown_ids():
    tl = _timeline()
    updates = [
        TimingUpdate(id="1", start_time=9, end_time=10),
        TimingUpdate(id="nope", start_time=1, end_time=2),
        TimingUpdate(id="3", start_time=3.2, end_time=3.9),
    ]
    assert tl.apply_timings(updates, ids=["3", "nope"]) == 1
    assert tl.get("1").start_time == 0.0
    assert tl.get("3").start_time == 3.2


def test_resync_skips_degenerate_timing():
    tl = _timeline()
    assert tl.apply_timings([TimingUpdate(id="1", start_time=2, end_time=2)]) == 0
    assert tl.get("1").end_time == 1.5


def test_resync_does_not_reorder():
    tl = _timeline()
    tl.apply_timings([TimingUpdate(id="3", start_time=0.2, end_time=0.8)])
    assert [c.id for c in tl] == ["1", "2", "3"]
    # 겹치면 리스트 앞쪽이 이김
    assert tl.active_at(0.5).id == "1"


def test_edit_text_keeps_timing_and_order():
    tl = _timeline()
    updated = tl.edit_text("2", "changed text")
    assert updated.text == "changed text"
    assert (updated.start_time, updated.end_time) == (1.5, 3.0)
    assert [c.id for c in tl] == ["1", "2", "3"]


def test_edit_text_unknown_id():
    with pytest.raises(KeyError):
        _timeline().edit_text("missing", "x")


def test_active_at():
    tl = _timeline()
    assert tl.active_at(0).id == "1"
    # 경계값은 앞 자막이 먼저 맞음
    assert tl.active_at(1.5).id == "1"
    assert tl.active_at(3.5).id == "3"
    assert tl.active_at(10) is None


def test_replace_and_subset():
    tl = _timeline()
    tl.replace([Caption(id="x", start_time=0, end_time=1, text="new")])
    assert len(tl) == 1
    assert tl.subset(["x", "1"])[0].id == "x"
    assert tl.duration == 1


def test_subset_keeps_sequence_order():
    assert [c.id for c in _timeline().subset(["3", "1"])] == ["1", "3"]


def test_captions_is_a_copy():
    tl = _timeline()
    tl.captions.clear()
    assert len(tl) == 3


def test_duplicate_and_blank_ids_are_reassigned():
    caps = ensure_unique_ids([
        Caption(id="a", start_time=0, end_time=1, text="x"),
        Caption(id="a", start_time=1, end_time=2, text="y"),
        Caption(id="", start_time=2, end_time=3, text="z"),
    ])
    ids = [c.id for c in caps]
    assert ids[0] == "a"
    assert len(set(ids)) == 3
    assert all(ids)


def test_payload_uses_camel_case():
    payload = _timeline().to_payload()
    assert payload[0] == {"id": "1", "startTime": 0.0, "endTime": 1.5, "text": "first one"}


def test_numeric_ids_are_coerced():
    c = Caption.model_validate({"id": 7, "startTime": 0, "endTime": 1, "text": "x"})
    assert c.id == "7"
