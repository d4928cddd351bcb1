"""File system helpers: path resolution, file status, file access and directory creation."""

from __future__ import annotations

import os
import stat as _stat
import sys
from enum import Enum
from typing import IO, Optional, Union


class Platform(Enum):
    """Operating system family the package runs on."""

    WIN = 0
    LINUX = 1
    UNKNOWN = 2

    def __str__(self) -> str:
        return self.name


def _detect_platform() -> Platform:
    if sys.platform.startswith("win"):
        return Platform.WIN
    if sys.platform.startswith("linux"):
        return Platform.LINUX
    return Platform.UNKNOWN


PLATFORM = _detect_platform()


class FileData:
    """Status information of a file system path."""

    def __init__(self, path: str) -> None:
        self.path = ""
        self.exists = False
        self.stat: Optional[os.stat_result] = None
        self.reset(path)

    def reset(self, path: str = "") -> None:
        """Refresh the status, switching to path first when one is given."""
        if path:
            self.path = path
        try:
            self.stat = os.stat(self.path)
        except OSError:
            self.stat = None
            self.exists = False
        else:
            self.exists = True

    @property
    def is_dir(self) -> bool:
        return self.stat is not None and _stat.S_ISDIR(self.stat.st_mode)

    @property
    def is_reg(self) -> bool:
        return self.stat is not None and _stat.S_ISREG(self.stat.st_mode)

    @property
    def size(self) -> int:
        return self.stat.st_size if self.stat is not None else 0

    def describe(self) -> str:
        return (
            "Data: "
            f"\n\tpath: {self.path}"
            f"\n\texit: {int(self.exists)}"
            f"\n\tisDir: {int(self.is_dir)}"
            f"\n\tisReg: {int(self.is_reg)}"
            f"\n\tsize: {self.size}\n"
        )


class Path:
    """A path together with its absolute form, split into directory names."""

    def __init__(self, path: str, split: str = "/") -> None:
        self.split = split
        self.path = ""
        self.absolute = ""
        self.current = ""
        self.dirs: list[str] = []
        self.name = ""
        self.reset(path)

    def reset(self, path: str = "") -> None:
        """Resolve the path again against the working directory, switching to path if given."""
        if path:
            self.path = path
        self.current = os.getcwd()
        if self.is_abs():
            self.absolute = self.path
        else:
            abs_dirs = self.split_dirs(self.current)
            for dirname in self.split_dirs(self.path):
                if dirname == ".":
                    continue
                if dirname == "..":
                    if abs_dirs:
                        abs_dirs.pop()
                else:
                    abs_dirs.append(dirname)
            self.absolute = "".join("/" + d for d in abs_dirs) or "/"
        self.dirs = self.split_dirs(self.absolute)
        self.name = self.dirs[-1] if self.dirs else ""

    def split_dirs(self, path: str) -> list[str]:
        """The names between separators; a leading or trailing separator adds no name."""
        if not path:
            return []
        start = 1 if path[0] == self.split else 0
        ends = [i for i, ch in enumerate(path) if i > 0 and ch == self.split]
        if path[-1] != self.split:
            ends.append(len(path))
        starts = [start] + [end + 1 for end in ends[:-1]]
        return [path[s:e] for s, e in zip(starts, ends)]

    def is_abs(self) -> bool:
        return self.path.startswith("/")

    def describe(self) -> str:
        dirs = "".join(f"{d}, " for d in self.dirs)
        return (
            "Path"
            f"\n\tsplit:{self.split}"
            f"\n\tpath: {self.path}"
            f"\n\tabs:  {self.absolute}"
            f"\n\tcur_dir: {self.current}"
            f"\n\tname: {self.name}"
            f"\n\tdirs: {dirs}\n"
        )


class Entry:
    """A file opened by path with positioned binary reads and writes."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path.path if isinstance(path, Path) else path)
        self.data = FileData(self.path.path)
        self._stream: Optional[IO[bytes]] = None

    def __enter__(self) -> "Entry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def _require_stream(self) -> IO[bytes]:
        if self._stream is None:
            raise ValueError(f"file is not open: {self.path.path}")
        return self._stream

    def reopen(self, mode: str = "a+") -> None:
        """Close any open stream and open the file again with mode; raises OSError on failure."""
        self.close()
        if "b" not in mode:
            mode += "b"
        self._stream = open(self.path.path, mode)

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def write(self, data: Union[bytes, str], pos: int = 0) -> int:
        """Write data, first moving to pos when pos is not zero; returns bytes written."""
        stream = self._require_stream()
        if pos:
            self.seek(pos)
        if isinstance(data, str):
            data = data.encode()
        return stream.write(data)

    def read(self, size: int, pos: int = 0) -> bytes:
        """Read up to size bytes, first moving to pos when pos is not zero."""
        stream = self._require_stream()
        if pos:
            self.seek(pos)
        return stream.read(size)

    def tell(self) -> int:
        return self._require_stream().tell()

    def seek(self, pos: int) -> int:
        stream = self._require_stream()
        stream.seek(pos)
        return stream.tell()


def mkdir(path: str, mode: int = 0o700) -> None:
    """Create one directory; raises OSError on failure."""
    os.mkdir(path, mode)


def mkdirs(path: str) -> str:
    """Create every missing directory along path; returns its absolute form."""
    resolved = Path(path)
    data = FileData(resolved.absolute)
    current = ""
    for dirname in resolved.dirs:
        current += resolved.split + dirname
        data.reset(current)
        if data.exists and data.is_dir:
            continue
        mkdir(current)
    return resolved.absolute