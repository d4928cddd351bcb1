import os

import pytest

from lsylar.files import (
    Entry,
    FileData,
    Path,
    mkdir,
    mkdirs,
)


def _buffer() -> bytes:
    size = 1024
    chars = ["\n" if i % 26 == 0 else chr(i % 26 + ord("a")) for i in range(size)]
    chars[size - 1] = "\n"
    return "".join(chars).encode()


def test_split_dirs_of_absolute_path():
    p = Path("/")
    assert p.split_dirs("/tt/cpp/solution") == ["tt", "cpp", "solution"]


def test_split_dirs_trailing_separator_and_relative():
    p = Path("/")
    assert p.split_dirs("./") == ["."]
    assert p.split_dirs("a/b") == ["a", "b"]
    assert p.split_dirs("") == []


def test_current_directory_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cwd = os.getcwd()
    p = Path("./")
    assert p.absolute == cwd
    assert p.current == cwd
    assert p.name == os.path.basename(cwd)
    assert not p.is_abs()


def test_reset_to_parent(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cwd = os.getcwd()
    p = Path("./")
    p.reset("../")
    assert p.absolute == os.path.dirname(cwd)
    assert p.path == "../"


def test_reset_without_argument_keeps_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    p = Path("sub/file.txt")
    p.reset()
    assert p.path == "sub/file.txt"
    assert p.absolute == os.getcwd() + "/sub/file.txt"
    assert p.dirs[-2:] == ["sub", "file.txt"]
    assert p.name == "file.txt"


def test_absolute_path_is_kept():
    p = Path("/a/b/c")
    assert p.is_abs()
    assert p.absolute == "/a/b/c"
    assert p.dirs == ["a", "b", "c"]
    assert "name: c" in p.describe()


def test_file_data(tmp_path):
    f = tmp_path / "x.bin"
    f.write_bytes(b"12345")
    d = FileData(str(f))
    assert d.exists and d.is_reg and not d.is_dir
    assert d.size == 5
    assert FileData(str(tmp_path)).is_dir
    missing = FileData(str(tmp_path / "missing"))
    assert not missing.exists
    assert missing.size == 0
    assert "exit: 0" in missing.describe()


def test_entry_write_positions(tmp_path):
    target = tmp_path / "for_test"
    buffer = _buffer()
    entry = Entry(Path(str(target)))
    entry.reopen("w")
    assert entry.write(buffer) == 1024
    assert entry.tell() == 1024
    assert entry.seek(10) == 10
    assert entry.tell() == 10
    entry.write(buffer[:512])
    assert entry.tell() == 522
    entry.close()
    entry.data.reset()
    assert entry.data.size == 1024
    assert target.read_bytes() == buffer[:10] + buffer[:512] + buffer[522:]


def test_entry_read(tmp_path):
    target = tmp_path / "data.txt"
    target.write_bytes(b"hello world")
    with Entry(str(target)) as entry:
        entry.reopen("r")
        assert entry.read(5) == b"hello"
        assert entry.read(5, 6) == b"world"
    assert not entry.is_open


def test_entry_not_open_raises(tmp_path):
    entry = Entry(str(tmp_path / "nothing"))
    with pytest.raises(ValueError):
        entry.write(b"x")


def test_reopen_missing_file_raises(tmp_path):
    entry = Entry(str(tmp_path / "no" / "such" / "file"))
    with pytest.raises(OSError):
        entry.reopen("r")


def test_mkdir_and_mkdirs(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    mkdir("./test_dir")
    assert (tmp_path / "test_dir").is_dir()
    result = mkdirs("./111/222/333/444")
    assert (tmp_path / "111" / "222" / "333" / "444").is_dir()
    assert result == os.getcwd() + "/111/222/333/444"
    mkdirs("./111/222/333/444")
    with pytest.raises(FileExistsError):
        mkdir("./test_dir")