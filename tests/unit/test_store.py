"""Unit tests for store.py - sandboxed file access."""

import os

import pytest

from codeagent.store import SandboxedStore
from codeagent.types import StoreError


@pytest.fixture
def store(tmp_path):
    return SandboxedStore(tmp_path)


class TestSandboxedStoreInit:
    def test_root_is_resolved(self, tmp_path):
        store = SandboxedStore(str(tmp_path / "."))
        assert store.root == tmp_path.resolve()

    def test_missing_root_is_fatal(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            SandboxedStore(tmp_path / "missing")

    def test_file_root_is_fatal(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")
        with pytest.raises(NotADirectoryError):
            SandboxedStore(f)


class TestListFiles:
    def test_lists_files_recursively(self, store, tmp_path):
        (tmp_path / "lib/sub").mkdir(parents=True)
        (tmp_path / "lib/file1.ex").write_text("content1")
        (tmp_path / "lib/file2.ex").write_text("content2")
        (tmp_path / "lib/sub/file3.ex").write_text("content3")
        (tmp_path / "other.txt").write_text("x")

        files = store.list_files("lib")

        assert set(files) == {"lib/file1.ex", "lib/file2.ex", "lib/sub/file3.ex"}

    def test_lists_whole_root_by_default(self, store, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "a/b.txt").write_text("b")
        (tmp_path / "c.txt").write_text("c")

        assert set(store.list_files()) == {"a/b.txt", "c.txt"}

    def test_empty_directory(self, store, tmp_path):
        (tmp_path / "empty").mkdir()
        assert store.list_files("empty") == []

    def test_missing_directory(self, store):
        result = store.list_files("missing_dir")
        assert isinstance(result, StoreError)
        assert result.kind == "directory_not_found"
        assert result.reason == "Directory does not exist"

    def test_file_is_not_a_directory(self, store, tmp_path):
        (tmp_path / "f.txt").write_text("x")
        result = store.list_files("f.txt")
        assert isinstance(result, StoreError)
        assert result.kind == "directory_not_found"

    def test_traversal_rejected(self, store):
        result = store.list_files("..")
        assert isinstance(result, StoreError)
        assert result.kind == "path_rejected"


class TestReadFile:
    def test_reads_file_content(self, store, tmp_path):
        (tmp_path / "test.txt").write_text("Hello, World!")
        assert store.read_file("test.txt") == "Hello, World!"

    def test_preserves_line_endings(self, store, tmp_path):
        (tmp_path / "crlf.txt").write_bytes(b"a\r\nb\r\n")
        assert store.read_file("crlf.txt") == "a\r\nb\r\n"

    def test_missing_file(self, store):
        result = store.read_file("nope.txt")
        assert isinstance(result, StoreError)
        assert result.kind == "not_found"

    def test_directory_is_not_found(self, store, tmp_path):
        (tmp_path / "dir").mkdir()
        result = store.read_file("dir")
        assert isinstance(result, StoreError)
        assert result.kind == "not_found"

    def test_binary_file_is_io_failure(self, store, tmp_path):
        (tmp_path / "blob.bin").write_bytes(b"\xff\xfe\x00\x80")
        result = store.read_file("blob.bin")
        assert isinstance(result, StoreError)
        assert result.kind == "io_failure"

    def test_prevents_path_traversal(self, store):
        result = store.read_file("../../../etc/passwd")
        assert isinstance(result, StoreError)
        assert result.kind == "path_rejected"
        assert result.reason == "path traversal"

    def test_forbidden_component(self, tmp_path):
        (tmp_path / ".env").write_text("SECRET=1")
        store = SandboxedStore(tmp_path, forbidden_components=[".env"])
        result = store.read_file(".env")
        assert isinstance(result, StoreError)
        assert result.kind == "path_rejected"


class TestWriteFile:
    def test_writes_file_content(self, store, tmp_path):
        assert store.write_file("new.txt", "New content") is None
        assert (tmp_path / "new.txt").read_text() == "New content"

    def test_creates_directories_if_needed(self, store, tmp_path):
        assert store.write_file("deep/nested/file.txt", "content") is None
        assert (tmp_path / "deep/nested/file.txt").exists()

    def test_existing_directories_are_fine(self, store, tmp_path):
        (tmp_path / "a").mkdir()
        assert store.write_file("a/x.txt", "1") is None
        assert store.write_file("a/y.txt", "2") is None

    def test_overwrites_existing_file(self, store, tmp_path):
        (tmp_path / "f.txt").write_text("a much longer original content")
        assert store.write_file("f.txt", "short") is None
        assert (tmp_path / "f.txt").read_text() == "short"

    def test_round_trip(self, store):
        content = "line 1\r\nline 2\n\ttabbed ünïcode\n"
        assert store.write_file("a/b/c.txt", content) is None
        assert store.read_file("a/b/c.txt") == content

    def test_empty_content(self, store, tmp_path):
        assert store.write_file("empty.txt", "") is None
        assert (tmp_path / "empty.txt").read_text() == ""

    def test_keeps_file_mode(self, store, tmp_path):
        script = tmp_path / "run.sh"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o755)

        assert store.write_file("run.sh", "#!/bin/sh\necho hi\n") is None
        assert os.stat(script).st_mode & 0o777 == 0o755

    def test_no_temp_files_left_behind(self, store, tmp_path):
        store.write_file("x.txt", "x")
        assert [p.name for p in tmp_path.iterdir()] == ["x.txt"]

    def test_prevents_path_traversal(self, store, tmp_path):
        result = store.write_file("../outside.txt", "content")
        assert isinstance(result, StoreError)
        assert result.kind == "path_rejected"
        assert not (tmp_path.parent / "outside.txt").exists()

    def test_writing_over_directory_is_io_failure(self, store, tmp_path):
        (tmp_path / "dir").mkdir()
        result = store.write_file("dir", "content")
        assert isinstance(result, StoreError)
        assert result.kind == "io_failure"
        assert (tmp_path / "dir").is_dir()

    def test_writing_root_is_io_failure(self, store):
        result = store.write_file("", "content")
        assert isinstance(result, StoreError)
        assert result.kind == "io_failure"


class TestUpdateFile:
    def test_updates_file_content(self, store, tmp_path):
        (tmp_path / "update.txt").write_text("Hello, World!")

        assert store.update_file("update.txt", "World", "Elixir") is None
        assert (tmp_path / "update.txt").read_text() == "Hello, Elixir!"

    def test_replaces_every_occurrence(self, store, tmp_path):
        (tmp_path / "f.txt").write_text("aaa")
        assert store.update_file("f.txt", "aa", "b") is None
        # Non-overlapping, left to right.
        assert (tmp_path / "f.txt").read_text() == "ba"

    def test_literal_not_regex(self, store, tmp_path):
        (tmp_path / "f.txt").write_text("x = a.b(1)")
        assert store.update_file("f.txt", "a.b(1)", "c") is None
        assert (tmp_path / "f.txt").read_text() == "x = c"

        (tmp_path / "g.txt").write_text("axb")
        assert store.update_file("g.txt", "a.b", "c") is None
        assert (tmp_path / "g.txt").read_text() == "axb"

    def test_missing_find_is_noop(self, store, tmp_path):
        (tmp_path / "f.txt").write_text("unchanged")
        assert store.update_file("f.txt", "absent", "x") is None
        assert (tmp_path / "f.txt").read_text() == "unchanged"

    def test_returns_error_if_file_doesnt_exist(self, store, tmp_path):
        result = store.update_file("nonexistent.txt", "old", "new")
        assert isinstance(result, StoreError)
        assert result.kind == "not_found"
        assert not (tmp_path / "nonexistent.txt").exists()

    def test_prevents_path_traversal(self, store):
        result = store.update_file("../x.txt", "a", "b")
        assert isinstance(result, StoreError)
        assert result.kind == "path_rejected"
