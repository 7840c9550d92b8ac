"""
Path resolution and StubPath handles.
"""
import pytest

from sftpstub import InvalidConfigurationError, PathResolver, StubPath


class TestPathResolver:
    def test_default_is_root(self):
        resolver = PathResolver()
        assert resolver.initial_directory == "/"
        assert resolver.resolve("a/b") == "/a/b"

    def test_relative_paths_use_initial_directory(self):
        resolver = PathResolver("/home/test")
        assert resolver.resolve("upload/file.txt") == (
            "/home/test/upload/file.txt"
        )
        assert resolver.resolve(".") == "/home/test"
        assert resolver.resolve("") == "/home/test"
        assert resolver.resolve("../other") == "/home/other"

    def test_absolute_paths_are_kept(self):
        resolver = PathResolver("/home/test")
        assert resolver.resolve("/etc/passwd") == "/etc/passwd"
        assert resolver.resolve("/a/./b/../c/") == "/a/c"

    def test_parent_of_root_is_root(self):
        assert PathResolver().resolve("/../..") == "/"

    @pytest.mark.parametrize("directory", ["", "home", "./home", None])
    def test_initial_directory_must_be_absolute(self, directory):
        with pytest.raises(InvalidConfigurationError) as excinfo:
            PathResolver(directory)
        assert str(excinfo.value) == "Initial directory must be absolute path."
        assert excinfo.value.value == directory

    def test_join(self):
        resolver = PathResolver("/base")
        assert resolver.join("/foo", "bar", "gus") == "/foo/bar/gus"
        assert resolver.join("foo", "", "bar") == "/base/foo/bar"
        assert resolver.join("") == "/base"


class TestStubPath:
    @pytest.fixture
    def tree(self, filesystem):
        filesystem.makedirs("/data/empty")
        filesystem.write_bytes("/data/b.csv", b"2")
        filesystem.write_bytes("/data/a.csv", b"1")
        filesystem.write_bytes("/data/notes.txt", "grüße".encode("utf-8"))
        return filesystem

    def test_str_and_name(self, tree):
        path = StubPath(tree, "/data/a.csv")
        assert str(path) == "/data/a.csv"
        assert path.name == "a.csv"
        assert repr(path) == "StubPath('/data/a.csv')"

    def test_parent(self, tree):
        path = StubPath(tree, "/data/a.csv")
        assert path.parent == StubPath(tree, "/data")
        assert path.parent.parent == StubPath(tree, "/")
        assert StubPath(tree, "/").parent == StubPath(tree, "/")

    def test_joinpath(self, tree):
        data = StubPath(tree, "/data")
        assert data.joinpath("a.csv") == StubPath(tree, "/data/a.csv")
        assert data / "empty" == StubPath(tree, "/data/empty")
        assert data.joinpath("x", "..", "b.csv").is_file()

    def test_equality_depends_on_filesystem(self, tree, filesystem):
        with type(filesystem)("other") as other:
            assert StubPath(tree, "/data") != StubPath(other, "/data")
        assert len({StubPath(tree, "/data"), StubPath(tree, "/data/")}) == 1

    def test_queries(self, tree):
        assert StubPath(tree, "/data").is_dir()
        assert not StubPath(tree, "/data").is_file()
        assert StubPath(tree, "/data/a.csv").is_file()
        assert not StubPath(tree, "/data/missing").exists()
        assert StubPath(tree, "/data/a.csv").stat()["size"] == 1

    def test_iterdir(self, tree):
        names = [p.name for p in StubPath(tree, "/data").iterdir()]
        assert names == ["a.csv", "b.csv", "empty", "notes.txt"]

    def test_glob(self, tree):
        data = StubPath(tree, "/data")
        assert [p.name for p in data.glob("*.csv")] == ["a.csv", "b.csv"]
        assert [p.name for p in data.glob("*.CSV")] == []
        assert list(data.glob("*.pdf")) == []

    def test_read(self, tree):
        assert StubPath(tree, "/data/a.csv").read_bytes() == b"1"
        assert StubPath(tree, "/data/notes.txt").read_text() == "grüße"

    def test_read_directory(self, tree):
        with pytest.raises(IsADirectoryError):
            StubPath(tree, "/data").read_bytes()
