"""Tests for mapping files and scanning directories."""

import logging
import os

import pytest

from pathmapfs import Mapper, PathIndex, PathMapperFS


def _make_tree(root, files):
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


class TestMapFile:
    """Test mapping single files."""

    def test_unmap_returns_real_path(self):
        fs = PathMapperFS()
        fs.map_file("/src/song.mp3", "Artist/Title.mp3")
        assert fs.unmap("Artist/Title.mp3") == "/src/song.mp3"

    def test_metadata_contains_options(self):
        fs = PathMapperFS()
        fs.map_file("/src/song.mp3", "Artist/Title.mp3", {"track": 1, "genre": "rock"})
        assert fs.metadata("Artist/Title.mp3", "track") == 1
        assert fs.metadata("Artist/Title.mp3", "genre") == "rock"

    def test_returns_file_node(self):
        fs = PathMapperFS()
        node = fs.map_file("/src/a", "x/a")
        assert node.is_file
        assert node.real_path == "/src/a"
        assert fs.node("x/a") is node

    def test_accepts_pathlike_real_path(self, tmp_path):
        fs = PathMapperFS()
        fs.map_file(tmp_path / "a.txt", "a.txt")
        assert fs.unmap("a.txt") == str(tmp_path / "a.txt")

    def test_idempotent(self):
        """Mapping the same pair twice yields one node with latest metadata."""
        fs = PathMapperFS()
        first = fs.map_file("/src/a", "x/a", {"n": 1})
        second = fs.map_file("/src/a", "x/a", {"n": 2})
        assert first is second
        assert fs.list_children("x") == ["a"]
        assert fs.metadata("x/a", "n") == 2

    def test_remap_replaces_real_path_and_keeps_metadata(self):
        fs = PathMapperFS()
        fs.map_file("/src/old", "x/a", {"keep": "yes", "n": 1})
        fs.map_file("/src/new", "x/a", {"n": 2})
        assert fs.unmap("x/a") == "/src/new"
        assert fs.metadata("x/a", "keep") == "yes"
        assert fs.metadata("x/a", "n") == 2

    def test_map_onto_populated_directory_raises(self):
        fs = PathMapperFS()
        fs.map_file("/src/a", "dir/a")
        with pytest.raises(IsADirectoryError):
            fs.map_file("/src/dir", "dir")
        assert fs.isdir("dir")
        assert fs.unmap("dir/a") == "/src/a"

    def test_map_below_file_raises(self):
        fs = PathMapperFS()
        fs.map_file("/src/a", "a")
        with pytest.raises(NotADirectoryError):
            fs.map_file("/src/b", "a/b")
        assert fs.unmap("a") == "/src/a"
        assert not fs.exists("a/b")

    def test_map_onto_root_raises(self):
        fs = PathMapperFS()
        with pytest.raises(IsADirectoryError):
            fs.map_file("/src/a", "/")
        assert fs.isdir("/")

    def test_bad_options_leave_node_unchanged(self):
        fs = PathMapperFS()
        fs.map_file("/src/a", "x/a", {"n": 1})
        with pytest.raises((TypeError, ValueError)):
            fs.map_file("/src/b", "x/a", [1, 2, 3])
        assert fs.unmap("x/a") == "/src/a"
        assert fs.metadata("x/a", "n") == 1

    def test_mapper_stamps_generation(self):
        index = PathIndex()
        mapper = Mapper(index)
        index.next_generation()
        node = mapper.map_file("/src/a", "a")
        assert node.generation == 1


class TestMapDirectory:
    """Test scanning real directories."""

    def test_maps_every_chosen_file(self, tmp_path):
        _make_tree(tmp_path, {"a.txt": b"a", "sub/b.txt": b"b", "sub/deep/c.txt": b"c"})
        fs = PathMapperFS()

        count = fs.map_directory(
            tmp_path, lambda p: "flat/" + os.path.basename(p)
        )

        assert count == 3
        assert sorted(fs.list_children("flat")) == ["a.txt", "b.txt", "c.txt"]
        assert fs.unmap("flat/c.txt") == str(tmp_path / "sub" / "deep" / "c.txt")

    def test_chooser_sees_each_file_once(self, tmp_path):
        _make_tree(tmp_path, {"a": b"", "d/b": b"", "d/e/c": b""})
        seen = []

        def chooser(path):
            seen.append(path)
            return None

        fs = PathMapperFS()
        # Overlapping roots still visit each file once.
        fs.map_directory([tmp_path, tmp_path / "d"], chooser)

        assert sorted(seen) == sorted(
            str(tmp_path / rel) for rel in ("a", "d/b", "d/e/c")
        )
        assert len(seen) == len(set(seen))

    def test_directories_are_not_offered(self, tmp_path):
        _make_tree(tmp_path, {"sub/a": b""})
        seen = []
        PathMapperFS().map_directory(tmp_path, lambda p: seen.append(p))
        assert seen == [str(tmp_path / "sub" / "a")]

    def test_none_skips_file(self, tmp_path):
        _make_tree(tmp_path, {"keep.mp3": b"", "skip.txt": b""})
        fs = PathMapperFS()

        count = fs.map_directory(
            tmp_path,
            lambda p: "music/" + os.path.basename(p) if p.endswith(".mp3") else None,
        )

        assert count == 1
        assert fs.list_children("music") == ["keep.mp3"]

    def test_chooser_tuple_sets_metadata(self, tmp_path):
        _make_tree(tmp_path, {"song.mp3": b""})
        fs = PathMapperFS()
        fs.map_directory(tmp_path, lambda p: ("Artist/Title.mp3", {"track": 7}))
        assert fs.metadata("Artist/Title.mp3", "track") == 7

    def test_chooser_exception_skips_only_that_file(self, tmp_path, caplog):
        _make_tree(tmp_path, {"bad": b"", "good1": b"", "good2": b""})

        def chooser(path):
            if path.endswith("bad"):
                raise RuntimeError("unreadable tags")
            return "out/" + os.path.basename(path)

        fs = PathMapperFS()
        with caplog.at_level(logging.WARNING, logger="pathmapfs.mapper"):
            count = fs.map_directory(tmp_path, chooser)

        assert count == 2
        assert sorted(fs.list_children("out")) == ["good1", "good2"]
        assert "bad" in caplog.text

    def test_mapping_conflict_skips_only_that_file(self, tmp_path):
        _make_tree(tmp_path, {"a": b"", "b": b""})
        fs = PathMapperFS()
        fs.map_file("/elsewhere", "taken/child")

        def chooser(path):
            return "taken" if path.endswith("a") else "free"

        assert fs.map_directory(tmp_path, chooser) == 1
        assert fs.isdir("taken")
        assert fs.unmap("free") == str(tmp_path / "b")

    def test_missing_directory_raises(self, tmp_path):
        fs = PathMapperFS()
        with pytest.raises(FileNotFoundError):
            fs.map_directory(tmp_path / "nope", lambda p: p)

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="root can read any directory",
    )
    def test_unreadable_subdirectory_raises(self, tmp_path):
        _make_tree(tmp_path, {"locked/a": b""})
        locked = tmp_path / "locked"
        locked.chmod(0o000)
        try:
            with pytest.raises(PermissionError):
                PathMapperFS().map_directory(tmp_path, lambda p: p)
        finally:
            locked.chmod(0o755)

    def test_single_file_root(self, tmp_path):
        _make_tree(tmp_path, {"one.bin": b"1"})
        fs = PathMapperFS()
        assert fs.map_directory(tmp_path / "one.bin", lambda p: "x/one") == 1
        assert fs.unmap("x/one") == str(tmp_path / "one.bin")

    def test_mapper_accepts_single_directory(self, tmp_path):
        """A bare str or Path is one directory, not an iterable of names."""
        _make_tree(tmp_path, {"a.txt": b"a", "sub/b.txt": b"b"})
        seen = []

        def chooser(path):
            seen.append(path)
            return "v/" + os.path.basename(path)

        index = PathIndex()
        assert Mapper(index).map_directory(str(tmp_path), chooser) == 2
        assert Mapper(index).map_directory(tmp_path, chooser) == 2

        expected = [str(tmp_path / "a.txt"), str(tmp_path / "sub" / "b.txt")]
        assert seen == expected * 2
        with index.reading():
            assert index.lookup("v/b.txt").real_path == expected[1]

    def test_create_classmethod(self, tmp_path):
        _make_tree(tmp_path, {"a.txt": b"hello"})
        fs = PathMapperFS.create(
            tmp_path, lambda p: "v/" + os.path.basename(p), allow_write=True
        )
        assert fs.allow_write is True
        assert fs.read_file("v/a.txt") == b"hello"
