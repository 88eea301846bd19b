from version_plane.impl.memory import MemoryObjectStore, MemoryRepoData
from version_plane.stage import StagingArea


def test_new_stage_is_clean():
    stage = StagingArea()
    assert stage.is_dirty() is False


def test_last_writer_wins():
    stage = StagingArea()

    stage.stage("f.txt", b"x")
    stage.mark_removed("f.txt")
    assert stage.is_removed("f.txt")
    assert not stage.is_staged("f.txt")

    stage.stage("f.txt", b"y")
    assert stage.get("f.txt") == b"y"
    assert not stage.is_removed("f.txt")


def test_unstage_and_unmark():
    stage = StagingArea({"a": b"1"}, {"b"})
    assert stage.is_dirty() is True

    stage.unstage("a")
    stage.unmark_removed("b")
    stage.unstage("missing")

    assert stage.is_dirty() is False


def test_listing_is_sorted():
    stage = StagingArea({"b": b"", "a": b""}, {"z", "y"})

    assert stage.staged_files() == ["a", "b"]
    assert stage.removed_files() == ["y", "z"]


def test_apply_stores_blobs():
    objects = MemoryObjectStore(MemoryRepoData())
    stage = StagingArea({"a": b"1"}, {"b"})

    tracked = stage.apply({"b": "old", "c": "keep"}, objects)

    assert tracked == {"a": objects.put(b"1"), "c": "keep"}
    assert objects.exists(tracked["a"])


def test_clear():
    stage = StagingArea({"a": b"1"}, {"b"})
    stage.clear()
    assert stage.is_dirty() is False
