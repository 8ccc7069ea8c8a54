"""Tests for the record store: mutations, invariants, bootstrap and write-through."""

from __future__ import annotations

import json

import pytest
from pathlib import Path

from shotlist import codec
from shotlist.records import Record
from shotlist.storage import FileSlotBackend, PersistenceAdapter, StorageUnavailable
from shotlist.store import RecordStore


class RecordingAdapter:
    """Stand-in persistence adapter that remembers every save."""

    key = "primary"
    legacy_key = "legacy"

    def __init__(self, primary=None, legacy=None) -> None:
        self.primary = primary
        self.legacy = legacy
        self.saved: list[dict] = []

    def load(self):
        return self.primary

    def load_legacy(self):
        return self.legacy

    def save(self, payload) -> bool:
        self.saved.append(payload)
        return True


class FullDiskBackend:
    def read(self, key):
        return None

    def write(self, key, text):
        raise StorageUnavailable("disk full")


class DeniedBackend:
    def read(self, key):
        raise PermissionError("denied")

    def write(self, key, text):
        raise PermissionError("denied")


def _titles(store: RecordStore) -> list[str]:
    return [r.title for r in store]


def _store(*titles: str, persistence=None) -> RecordStore:
    return RecordStore(persistence, records=[Record.new(t) for t in titles])


class TestSeed:
    def test_default_single_record(self):
        store = RecordStore()
        assert len(store) == 1
        assert store[0].title == "分镜 1"
        assert store[0].content()[1:] == ("", "")

    def test_custom_prefix(self):
        assert RecordStore(title_prefix="Shot")[0].title == "Shot 1"

    def test_duplicate_ids_rejected(self):
        r = Record.new("A")
        with pytest.raises(ValueError, match="unique"):
            RecordStore(records=[r, r])


class TestInsertAfter:
    def test_middle(self):
        store = _store("A", "B", "C")
        records = store.insert_after(0)
        assert len(records) == 4
        assert [r.title for r in records] == ["A", "分镜 4", "B", "C"]

    def test_last_index_appends(self):
        store = _store("A", "B")
        records = store.insert_after(1)
        assert records[-1].title == "分镜 3"

    @pytest.mark.parametrize("index", [5, -1, 100])
    def test_out_of_range_appends(self, index: int):
        store = _store("A", "B")
        records = store.insert_after(index)
        assert len(records) == 3
        assert records[2].title == "分镜 3"

    def test_fresh_unique_id(self):
        store = _store("A")
        store.insert_after(0)
        store.insert_after(0)
        assert len({r.id for r in store}) == 3

    def test_label_not_renumbered(self):
        store = _store("A", "B")
        store.insert_after(0)  # 分镜 3
        store.remove(0)
        assert _titles(store) == ["分镜 3", "B"]


class TestUpdate:
    def test_partial(self):
        store = _store("A")
        rid = store[0].id
        store.update(0, positive="masterpiece")
        assert store[0].content() == ("A", "masterpiece", "")
        assert store[0].id == rid

    def test_out_of_range_noop(self):
        adapter = RecordingAdapter()
        store = _store("A", persistence=adapter)
        assert [r.content() for r in store.update(3, title="X")] == [("A", "", "")]
        assert adapter.saved == []

    def test_id_not_editable(self):
        store = _store("A")
        with pytest.raises(ValueError, match="id"):
            store.update(0, id="forged")

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            _store("A").update(0, prompt="x")


class TestRemove:
    def test_single_record_kept(self):
        store = _store("A")
        assert len(store.remove(0)) == 1

    def test_removes(self):
        store = _store("A", "B", "C")
        store.remove(1)
        assert _titles(store) == ["A", "C"]

    def test_out_of_range_noop(self):
        store = _store("A", "B")
        store.remove(2)
        store.remove(-1)
        assert _titles(store) == ["A", "B"]


class TestMove:
    def test_forward(self):
        store = _store("A", "B", "C", "D")
        store.move(0, 2)
        assert _titles(store) == ["B", "C", "A", "D"]

    def test_backward(self):
        store = _store("A", "B", "C", "D")
        store.move(3, 1)
        assert _titles(store) == ["A", "D", "B", "C"]

    @pytest.mark.parametrize("src,dst", [(1, 1), (-1, 0), (0, 4), (9, 0)])
    def test_noop(self, src: int, dst: int):
        adapter = RecordingAdapter()
        store = _store("A", "B", "C", "D", persistence=adapter)
        store.move(src, dst)
        assert _titles(store) == ["A", "B", "C", "D"]
        assert adapter.saved == []

    def test_preserves_ids_and_relative_order(self):
        store = _store("A", "B", "C", "D", "E")
        before = [r.id for r in store]
        for src in range(5):
            for dst in range(5):
                store.replace_all([Record(id=i, title=i) for i in before])
                after = [r.id for r in store.move(src, dst)]
                moved = before[src]
                assert sorted(after) == sorted(before)
                assert after[dst] == moved
                assert [i for i in after if i != moved] == [i for i in before if i != moved]


class TestReplaceAll:
    def test_replaces(self):
        store = _store("A")
        store.replace_all([Record.new("X"), Record.new("Y")])
        assert _titles(store) == ["X", "Y"]

    def test_empty_rejected(self):
        store = _store("A")
        with pytest.raises(ValueError):
            store.replace_all([])
        assert _titles(store) == ["A"]


class TestWriteThrough:
    def test_each_mutation_saves_v2(self):
        adapter = RecordingAdapter()
        store = _store("A", persistence=adapter)
        store.insert_after(0)
        store.update(1, negative="lowres")
        store.move(1, 0)
        store.remove(1)
        assert len(adapter.saved) == 4
        assert adapter.saved[-1] == {
            "type": codec.FORMAT_TAG,
            "version": 2,
            "items": [{"title": "分镜 2", "positive": "", "negative": "lowres"}],
        }

    def test_unchanged_update_not_saved(self):
        adapter = RecordingAdapter()
        store = _store("A", persistence=adapter)
        store.update(0, title="A")
        assert adapter.saved == []

    def test_failed_write_keeps_memory_state(self):
        adapter = PersistenceAdapter(FullDiskBackend(), key="primary")
        store = RecordStore(adapter)
        store.insert_after(0)
        store.update(1, title="kept")
        assert _titles(store) == ["分镜 1", "kept"]

    def test_permission_error_not_raised(self):
        adapter = PersistenceAdapter(DeniedBackend(), key="primary", legacy_key="legacy")
        store = RecordStore.open(adapter)
        store.insert_after(0)
        store.update(0, positive="p")
        store.move(1, 0)
        store.remove(0)
        assert [r.content() for r in store] == [("分镜 1", "p", "")]

    def test_saved_state_reloads(self, tmp_path: Path):
        adapter = PersistenceAdapter(FileSlotBackend(tmp_path), key="primary")
        store = RecordStore.open(adapter)
        store.update(0, positive="p")
        store.insert_after(0)
        reloaded = RecordStore.open(adapter)
        assert [r.content() for r in reloaded] == [r.content() for r in store]
        assert {r.id for r in reloaded}.isdisjoint(r.id for r in store)


class TestOpen:
    def test_nothing_saved(self):
        adapter = RecordingAdapter()
        store = RecordStore.open(adapter)
        assert _titles(store) == ["分镜 1"]
        assert adapter.saved == []

    def test_primary_v2(self):
        adapter = RecordingAdapter(primary=codec.encode([Record.new("A", "p", "n")]))
        store = RecordStore.open(adapter)
        assert [r.content() for r in store] == [("A", "p", "n")]

    def test_primary_must_be_v2(self):
        v1 = {"type": codec.FORMAT_TAG, "version": 1, "items": [{"title": "old", "prompt": "p"}]}
        store = RecordStore.open(RecordingAdapter(primary=v1))
        assert _titles(store) == ["分镜 1"]

    def test_legacy_fallback(self):
        v1 = {"type": codec.FORMAT_TAG, "version": 1, "items": [{"title": "old", "prompt": "p"}]}
        bad_primary = {"type": codec.FORMAT_TAG, "version": 2, "items": []}
        store = RecordStore.open(RecordingAdapter(primary=bad_primary, legacy=v1))
        assert [r.content() for r in store] == [("old", "p", "")]

    def test_primary_wins_over_legacy(self):
        v1 = {"type": codec.FORMAT_TAG, "version": 1, "items": [{"title": "old"}]}
        v2 = codec.encode([Record.new("new")])
        store = RecordStore.open(RecordingAdapter(primary=v2, legacy=v1))
        assert _titles(store) == ["new"]

    def test_legacy_must_be_v1(self):
        v2 = codec.encode([Record.new("wrong slot")])
        store = RecordStore.open(RecordingAdapter(legacy=v2))
        assert _titles(store) == ["分镜 1"]

    def test_corrupt_file_falls_back(self, tmp_path: Path):
        (tmp_path / "primary.json").write_text("garbage", encoding="utf-8")
        (tmp_path / "legacy.json").write_text(
            json.dumps({"type": codec.FORMAT_TAG, "version": 1, "items": [{"title": "L"}]}),
            encoding="utf-8",
        )
        adapter = PersistenceAdapter(FileSlotBackend(tmp_path), key="primary", legacy_key="legacy")
        assert _titles(RecordStore.open(adapter)) == ["L"]
