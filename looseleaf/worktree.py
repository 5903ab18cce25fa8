# worktree.py -- Converting between working trees and tree objects
# Copyright (C) 2026 The looseleaf authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# looseleaf is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Snapshotting directories into trees and checking trees back out.

Both directions work against the small :class:`Directory` interface rather
than the filesystem directly, so trees can be built from and written to
in-memory directories as well.
"""

__all__ = [
    "DEFAULT_IGNORE",
    "Directory",
    "FilesystemDirectory",
    "MemoryDirectory",
    "materialize",
    "validate_path_element",
    "write_tree",
]

import os
import stat
from collections.abc import Collection, Iterator
from typing import NamedTuple, Protocol, Union

from .errors import CorruptObject, FormatError
from .log_utils import getLogger
from .object_store import BaseObjectStore, read_tree
from .objects import (
    BLOB,
    EXECUTABLE_MODE,
    FILE_MODE,
    SYMLINK_MODE,
    TREE,
    TREE_MODE,
    ObjectID,
    TreeEntry,
    serialize_tree,
    sorted_tree_items,
)

logger = getLogger(__name__)

# Never snapshot the repository metadata directory
DEFAULT_IGNORE = frozenset([b".git"])

INVALID_DOTNAMES = (b".git", b".", b"..", b"")


class Directory(Protocol):
    """A directory that trees can be read from and written to.

    All names are single path elements, as bytes.
    """

    def list(self) -> list[bytes]: ...

    def is_dir(self, name: bytes) -> bool: ...

    def is_symlink(self, name: bytes) -> bool: ...

    def is_executable(self, name: bytes) -> bool: ...

    def read_file(self, name: bytes) -> bytes: ...

    def read_link(self, name: bytes) -> bytes: ...

    def subdirectory(self, name: bytes, create: bool = False) -> "Directory": ...

    def write_file(self, name: bytes, data: bytes, executable: bool = False) -> None: ...

    def symlink(self, name: bytes, target: bytes) -> None: ...


class FilesystemDirectory:
    """Directory backed by a directory on disk."""

    def __init__(self, path: Union[str, bytes, "os.PathLike[str]"]) -> None:
        self.path = os.fsencode(path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({os.fsdecode(self.path)!r})"

    def _join(self, name: bytes) -> bytes:
        return os.path.join(self.path, name)

    def list(self) -> list[bytes]:
        return os.listdir(self.path)

    def is_dir(self, name: bytes) -> bool:
        return stat.S_ISDIR(os.lstat(self._join(name)).st_mode)

    def is_symlink(self, name: bytes) -> bool:
        return stat.S_ISLNK(os.lstat(self._join(name)).st_mode)

    def is_executable(self, name: bytes) -> bool:
        st = os.lstat(self._join(name))
        return stat.S_ISREG(st.st_mode) and bool(st.st_mode & 0o111)

    def read_file(self, name: bytes) -> bytes:
        with open(self._join(name), "rb") as f:
            return f.read()

    def read_link(self, name: bytes) -> bytes:
        return os.readlink(self._join(name))

    def subdirectory(self, name: bytes, create: bool = False) -> "FilesystemDirectory":
        path = self._join(name)
        if create:
            try:
                os.mkdir(path)
            except FileExistsError:
                if not os.path.isdir(path):
                    raise
        return FilesystemDirectory(path)

    def _remove_link(self, path: bytes) -> None:
        if os.path.islink(path):
            os.unlink(path)

    def write_file(self, name: bytes, data: bytes, executable: bool = False) -> None:
        path = self._join(name)
        # Never write through a symlink that happens to be in the way
        self._remove_link(path)
        with open(path, "wb") as f:
            f.write(data)
        os.chmod(path, EXECUTABLE_MODE & 0o777 if executable else FILE_MODE & 0o777)

    def symlink(self, name: bytes, target: bytes) -> None:
        path = self._join(name)
        if os.path.lexists(path):
            os.unlink(path)
        os.symlink(target, path)


class _MemoryFile(NamedTuple):
    data: bytes
    executable: bool


class _MemorySymlink(NamedTuple):
    target: bytes


class MemoryDirectory:
    """Directory kept entirely in memory."""

    def __init__(self) -> None:
        self._entries: dict[
            bytes, Union["MemoryDirectory", _MemoryFile, _MemorySymlink]
        ] = {}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {sorted(self._entries)!r}>"

    def _lookup(self, name: bytes) -> Union["MemoryDirectory", _MemoryFile, _MemorySymlink]:
        try:
            return self._entries[name]
        except KeyError as exc:
            raise FileNotFoundError(name) from exc

    def list(self) -> list[bytes]:
        return list(self._entries)

    def is_dir(self, name: bytes) -> bool:
        return isinstance(self._lookup(name), MemoryDirectory)

    def is_symlink(self, name: bytes) -> bool:
        return isinstance(self._lookup(name), _MemorySymlink)

    def is_executable(self, name: bytes) -> bool:
        entry = self._lookup(name)
        return isinstance(entry, _MemoryFile) and entry.executable

    def read_file(self, name: bytes) -> bytes:
        entry = self._lookup(name)
        if not isinstance(entry, _MemoryFile):
            raise IsADirectoryError(name)
        return entry.data

    def read_link(self, name: bytes) -> bytes:
        entry = self._lookup(name)
        if not isinstance(entry, _MemorySymlink):
            raise OSError(f"{name!r} is not a symbolic link")
        return entry.target

    def subdirectory(self, name: bytes, create: bool = False) -> "MemoryDirectory":
        entry = self._entries.get(name)
        if entry is None:
            if not create:
                raise FileNotFoundError(name)
            entry = self._entries[name] = MemoryDirectory()
        if not isinstance(entry, MemoryDirectory):
            raise NotADirectoryError(name)
        return entry

    def write_file(self, name: bytes, data: bytes, executable: bool = False) -> None:
        if isinstance(self._entries.get(name), MemoryDirectory):
            raise IsADirectoryError(name)
        self._entries[name] = _MemoryFile(bytes(data), executable)

    def symlink(self, name: bytes, target: bytes) -> None:
        if isinstance(self._entries.get(name), MemoryDirectory):
            raise IsADirectoryError(name)
        self._entries[name] = _MemorySymlink(target)

    def iter_files(self, prefix: bytes = b"") -> Iterator[tuple[bytes, bytes]]:
        """Iterate over (path, contents) of all regular files, recursively."""
        for name in sorted(self._entries):
            entry = self._entries[name]
            path = prefix + name
            if isinstance(entry, MemoryDirectory):
                yield from entry.iter_files(path + b"/")
            elif isinstance(entry, _MemoryFile):
                yield path, entry.data


def write_tree(
    object_store: BaseObjectStore,
    directory: Directory,
    ignore: Collection[bytes] = DEFAULT_IGNORE,
    exclude: Collection[bytes] = (),
) -> ObjectID:
    """Snapshot a directory into the object store.

    Subtrees and blobs are stored before the tree that refers to them.
    Empty subdirectories become empty trees.

    Args:
      object_store: Store to write to
      directory: Directory to snapshot
      ignore: Names to skip at every level
      exclude: Slash-separated paths, relative to directory, to skip
    Returns: Hex id of the root tree
    """
    entries = []
    for name in directory.list():
        if name in ignore or name in exclude:
            continue
        if directory.is_symlink(name):
            sha = object_store.put(BLOB, directory.read_link(name))
            entries.append(TreeEntry(SYMLINK_MODE, name, sha))
        elif directory.is_dir(name):
            prefix = name + b"/"
            nested = [p[len(prefix):] for p in exclude if p.startswith(prefix)]
            sha = write_tree(
                object_store, directory.subdirectory(name), ignore, nested
            )
            entries.append(TreeEntry(TREE_MODE, name, sha))
        else:
            sha = object_store.put(BLOB, directory.read_file(name))
            mode = EXECUTABLE_MODE if directory.is_executable(name) else FILE_MODE
            entries.append(TreeEntry(mode, name, sha))
    return object_store.put(TREE, serialize_tree(sorted_tree_items(entries)))


def validate_path_element(element: bytes) -> bool:
    """Check whether a tree entry name is safe to check out."""
    return element not in INVALID_DOTNAMES and b"/" not in element


def materialize(
    object_store: BaseObjectStore, tree_sha: ObjectID, directory: Directory
) -> None:
    """Write the contents of a tree into a directory.

    Existing files with the same names are overwritten; nothing is removed.
    Entries with modes other than trees, regular files and symlinks (such
    as submodules) are skipped.

    Raises:
      CorruptObject: if an entry name would escape the directory
      FormatError: if an entry does not point at an object of the right type
    """
    for entry in read_tree(object_store, tree_sha):
        if not validate_path_element(entry.name):
            raise CorruptObject(f"unsafe tree entry name {entry.name!r}")
        if entry.mode == TREE_MODE:
            materialize(
                object_store, entry.sha, directory.subdirectory(entry.name, create=True)
            )
            continue
        if not (stat.S_ISREG(entry.mode) or stat.S_ISLNK(entry.mode)):
            logger.warning(
                "skipping %r with unsupported mode %o", entry.name, entry.mode
            )
            continue
        type_name, contents = object_store.get(entry.sha)
        if type_name != BLOB:
            raise FormatError(
                f"{entry.name!r} points at a {type_name.decode('ascii')}, not a blob"
            )
        if stat.S_ISLNK(entry.mode):
            directory.symlink(entry.name, contents)
        else:
            directory.write_file(
                entry.name, contents, executable=bool(entry.mode & 0o111)
            )
