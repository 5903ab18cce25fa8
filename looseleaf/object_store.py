# object_store.py -- Object store for loose git objects
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

"""Git object store interfaces and implementation."""

__all__ = [
    "BaseObjectStore",
    "DiskObjectStore",
    "MemoryObjectStore",
    "hex_to_filename",
    "read_tree",
    "write_commit",
]

import os
import time
from collections.abc import Iterator
from typing import Optional

from .errors import FormatError, ObjectMissing
from .file import FileLocked, LockedFile
from .log_utils import getLogger
from .objects import (
    COMMIT,
    TREE,
    Commit,
    ObjectID,
    TreeEntry,
    decode_loose_object,
    encode_loose_object,
    hash_object,
    parse_tree,
    valid_hexsha,
)

logger = getLogger(__name__)

# Loose objects are read-only once written
LOOSE_OBJECT_MODE = 0o444


def hex_to_filename(path: str, hex: ObjectID) -> str:
    """Takes a hex sha and returns its filename relative to the given path."""
    hexstr = hex.decode("ascii")
    return os.path.join(path, hexstr[:2], hexstr[2:])


class BaseObjectStore:
    """Object store interface."""

    def put(self, type_name: bytes, payload: bytes) -> ObjectID:
        """Store an object and return its id.

        Storing the same object twice is harmless and returns the same id.
        """
        raise NotImplementedError(self.put)

    def get(self, sha: ObjectID) -> tuple[bytes, bytes]:
        """Obtain the type and payload of an object.

        Args:
          sha: hex id of the object
        Returns: tuple of (type name, payload)
        Raises:
          ObjectMissing: if there is no such object
          CorruptObject: if the stored object can not be decoded
        """
        raise NotImplementedError(self.get)

    def exists(self, sha: ObjectID) -> bool:
        """Check if an object is present."""
        raise NotImplementedError(self.exists)

    def __contains__(self, sha: ObjectID) -> bool:
        return self.exists(sha)

    def __iter__(self) -> Iterator[ObjectID]:
        """Iterate over the ids of the objects present in this store."""
        raise NotImplementedError(self.__iter__)


class DiskObjectStore(BaseObjectStore):
    """Git-style loose object store on disk.

    Each object lives in ``<path>/<id[:2]>/<id[2:]>``.
    """

    # Seconds to wait for another writer holding an object's lock
    lock_timeout = 1.0

    def __init__(
        self,
        path: "str | os.PathLike[str]",
        loose_compression_level: int = -1,
        fsync_object_files: bool = False,
    ) -> None:
        """Open an object store.

        Args:
          path: Path of the object store.
          loose_compression_level: zlib compression level for loose objects
          fsync_object_files: whether to fsync object files before renaming
            them into place
        """
        self.path = os.fspath(path)
        self.loose_compression_level = loose_compression_level
        self.fsync_object_files = fsync_object_files

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.path!r})>"

    @classmethod
    def init(cls, path: "str | os.PathLike[str]") -> "DiskObjectStore":
        """Create the object directory (if needed) and open it."""
        try:
            os.mkdir(path)
        except FileExistsError:
            pass
        return cls(path)

    def _get_shafile_path(self, sha: ObjectID) -> str:
        return hex_to_filename(self.path, sha)

    def exists(self, sha: ObjectID) -> bool:
        if not valid_hexsha(sha):
            return False
        return os.path.exists(self._get_shafile_path(sha))

    def put(self, type_name: bytes, payload: bytes) -> ObjectID:
        sha, compressed = encode_loose_object(
            type_name, payload, compression_level=self.loose_compression_level
        )
        path = self._get_shafile_path(sha)
        try:
            os.mkdir(os.path.dirname(path))
        except FileExistsError:
            pass
        if os.path.exists(path):
            return sha
        try:
            with LockedFile(
                path, mask=LOOSE_OBJECT_MODE, fsync=self.fsync_object_files
            ) as f:
                f.write(compressed)
        except FileLocked:
            # A lock left behind by a crashed writer never turns into the object.
            deadline = time.monotonic() + self.lock_timeout
            while not os.path.exists(path):
                if time.monotonic() >= deadline:
                    raise
                time.sleep(0.01)
            logger.debug("object %s was written concurrently", sha.decode())
        return sha

    def get(self, sha: ObjectID) -> tuple[bytes, bytes]:
        if not valid_hexsha(sha):
            raise ObjectMissing(sha)
        try:
            with open(self._get_shafile_path(sha), "rb") as f:
                compressed = f.read()
        except FileNotFoundError as exc:
            raise ObjectMissing(sha) from exc
        return decode_loose_object(compressed)

    def __iter__(self) -> Iterator[ObjectID]:
        for base in sorted(os.listdir(self.path)):
            subdir = os.path.join(self.path, base)
            if len(base) != 2 or not os.path.isdir(subdir):
                continue
            for rest in sorted(os.listdir(subdir)):
                sha = os.fsencode(base + rest)
                if valid_hexsha(sha):
                    yield sha


class MemoryObjectStore(BaseObjectStore):
    """Object store that keeps all objects in memory."""

    def __init__(self) -> None:
        self._data: dict[ObjectID, tuple[bytes, bytes]] = {}

    def put(self, type_name: bytes, payload: bytes) -> ObjectID:
        sha = hash_object(type_name, payload)
        self._data.setdefault(sha, (type_name, bytes(payload)))
        return sha

    def get(self, sha: ObjectID) -> tuple[bytes, bytes]:
        try:
            return self._data[sha]
        except KeyError as exc:
            raise ObjectMissing(sha) from exc

    def exists(self, sha: ObjectID) -> bool:
        return sha in self._data

    def __iter__(self) -> Iterator[ObjectID]:
        return iter(sorted(self._data))

    def __len__(self) -> int:
        return len(self._data)


def read_tree(object_store: BaseObjectStore, sha: ObjectID) -> list[TreeEntry]:
    """Read the entries of a tree, in serialized order.

    Raises:
      ObjectMissing: if the tree does not exist
      FormatError: if the object is not a tree
      CorruptObject: if the tree payload is malformed
    """
    type_name, payload = object_store.get(sha)
    if type_name != TREE:
        raise FormatError(
            f"{sha.decode('ascii')} is a {type_name.decode('ascii')}, not a tree"
        )
    return list(parse_tree(payload))


def _check_object_type(
    object_store: BaseObjectStore, sha: ObjectID, expected: bytes
) -> None:
    if not valid_hexsha(sha):
        raise ObjectMissing(sha)
    type_name, _ = object_store.get(sha)
    if type_name != expected:
        raise FormatError(
            f"{sha.decode('ascii')} is a {type_name.decode('ascii')}, "
            f"not a {expected.decode('ascii')}"
        )


def write_commit(
    object_store: BaseObjectStore,
    tree: ObjectID,
    parent: Optional[ObjectID],
    message: bytes,
    identity: bytes,
    commit_time: Optional[int] = None,
    commit_timezone: Optional[int] = None,
) -> ObjectID:
    """Create a commit object and store it.

    Args:
      object_store: Store to write to
      tree: Hex id of the tree snapshot
      parent: Hex id of the parent commit, or None for a root commit
      message: Commit message; a trailing newline is added if missing
      identity: Author and committer, as b"Name <email>"
      commit_time: Seconds since the epoch (defaults to now)
      commit_timezone: Offset from UTC in seconds (defaults to the local zone)
    Returns: Hex id of the new commit
    Raises:
      ObjectMissing: if the tree or parent is not a stored object id
      FormatError: if the tree or parent has the wrong object type
    """
    _check_object_type(object_store, tree, TREE)
    if parent is not None:
        _check_object_type(object_store, parent, COMMIT)
    if commit_time is None:
        commit_time = int(time.time())
    if commit_timezone is None:
        commit_timezone = time.localtime(commit_time).tm_gmtoff
    if not message.endswith(b"\n"):
        message += b"\n"
    commit = Commit(
        tree=tree,
        parent=parent,
        author=identity,
        author_time=commit_time,
        author_timezone=commit_timezone,
        committer=identity,
        commit_time=commit_time,
        commit_timezone=commit_timezone,
        message=message,
    )
    return object_store.put(COMMIT, commit.as_payload())
