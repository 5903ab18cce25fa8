# objects.py -- Loose object codec and the tree/commit model
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

"""Access to base git objects.

Objects are stored as ``<type> <length>\\0<payload>``, zlib-compressed, and
named by the SHA1 of the uncompressed form. Object ids are passed around as
40-byte lowercase hex strings (bytes); the raw 20-byte form only appears
inside tree payloads and pack files.
"""

__all__ = [
    "BLOB",
    "COMMIT",
    "EXECUTABLE_MODE",
    "FILE_MODE",
    "OBJECT_TYPES",
    "SYMLINK_MODE",
    "TAG",
    "TREE",
    "TREE_MODE",
    "Commit",
    "ObjectID",
    "TreeEntry",
    "commit_tree_id",
    "decode_loose_object",
    "encode_loose_object",
    "format_timezone",
    "hash_object",
    "hex_to_sha",
    "object_header",
    "parse_timezone",
    "parse_tree",
    "pretty_format_tree_entry",
    "serialize_tree",
    "sha_to_hex",
    "sorted_tree_items",
    "type_name_from_num",
    "type_num_from_name",
    "valid_hexsha",
]

import binascii
import zlib
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from hashlib import sha1
from typing import NamedTuple, Optional

from .errors import CorruptObject, FormatError

ObjectID = bytes

BLOB = b"blob"
TREE = b"tree"
COMMIT = b"commit"
TAG = b"tag"

# Numeric types as used in pack entry headers
_TYPE_NUMS = {
    COMMIT: 1,
    TREE: 2,
    BLOB: 3,
    TAG: 4,
}
_TYPE_NAMES = {num: name for (name, num) in _TYPE_NUMS.items()}

OBJECT_TYPES = frozenset(_TYPE_NUMS)

TREE_MODE = 0o040000
FILE_MODE = 0o100644
EXECUTABLE_MODE = 0o100755
SYMLINK_MODE = 0o120000

_TREE_HEADER = b"tree"
_PARENT_HEADER = b"parent"
_AUTHOR_HEADER = b"author"
_COMMITTER_HEADER = b"committer"


def sha_to_hex(sha: bytes) -> ObjectID:
    """Takes a raw 20-byte sha and returns its hex form."""
    hexsha = binascii.hexlify(sha)
    assert len(hexsha) == 40, f"Incorrect length of sha1 string: {hexsha!r}"
    return hexsha


def hex_to_sha(hex: ObjectID) -> bytes:
    """Takes a hex sha and returns a binary sha."""
    if len(hex) != 40:
        raise ValueError(f"Incorrect length of hexsha: {hex!r}")
    try:
        return binascii.unhexlify(hex)
    except (TypeError, binascii.Error) as exc:
        raise ValueError(exc.args[0]) from exc


def valid_hexsha(hex: bytes) -> bool:
    """Check whether hex is a well-formed 40 character hex object id."""
    if len(hex) != 40:
        return False
    try:
        binascii.unhexlify(hex)
    except (TypeError, binascii.Error):
        return False
    return True


def type_num_from_name(type_name: bytes) -> int:
    """Map an object type keyword to its pack type number."""
    try:
        return _TYPE_NUMS[type_name]
    except KeyError as exc:
        raise FormatError(f"unknown object type {type_name!r}") from exc


def type_name_from_num(type_num: int) -> bytes:
    """Map a pack type number to its object type keyword."""
    try:
        return _TYPE_NAMES[type_num]
    except KeyError as exc:
        raise FormatError(f"unknown object type number {type_num}") from exc


def object_header(type_name: bytes, length: int) -> bytes:
    """Return the header of a loose object: ``<type> <length>\\0``."""
    return type_name + b" " + str(length).encode("ascii") + b"\0"


def hash_object(type_name: bytes, payload: bytes) -> ObjectID:
    """Compute the id an object would be stored under, without storing it."""
    if type_name not in OBJECT_TYPES:
        raise FormatError(f"unknown object type {type_name!r}")
    h = sha1(object_header(type_name, len(payload)))
    h.update(payload)
    return h.hexdigest().encode("ascii")


def encode_loose_object(
    type_name: bytes, payload: bytes, compression_level: int = -1
) -> tuple[ObjectID, bytes]:
    """Serialize an object for storage as a loose object.

    Args:
      type_name: Object type keyword (b"blob", b"tree", ...)
      payload: Uncompressed object contents
      compression_level: zlib compression level
    Returns: Tuple of (hex object id, compressed envelope)
    """
    sha = hash_object(type_name, payload)
    compobj = zlib.compressobj(compression_level)
    compressed = compobj.compress(object_header(type_name, len(payload)))
    compressed += compobj.compress(payload)
    compressed += compobj.flush()
    return sha, compressed


def decode_loose_object(compressed: bytes) -> tuple[bytes, bytes]:
    """Parse a compressed loose object.

    Args:
      compressed: Contents of a loose object file
    Returns: Tuple of (type name, payload)
    Raises:
      CorruptObject: if the data can not be decompressed, has no header
        terminator, or the declared length is wrong
      FormatError: if the type keyword is not known
    """
    decomp = zlib.decompressobj()
    try:
        text = decomp.decompress(compressed)
        text += decomp.flush()
    except zlib.error as exc:
        raise CorruptObject(f"unable to decompress object: {exc}") from exc
    if not decomp.eof:
        raise CorruptObject("truncated zlib stream in loose object")
    header, sep, payload = text.partition(b"\0")
    if not sep:
        raise CorruptObject("loose object header is not NUL-terminated")
    type_name, sep, size_text = header.partition(b" ")
    if type_name not in OBJECT_TYPES:
        raise FormatError(f"unknown object type {type_name!r}")
    if not sep or not size_text.isdigit():
        raise CorruptObject(f"invalid object header {header!r}")
    if int(size_text) != len(payload):
        raise CorruptObject(
            f"object length mismatch: header says {int(size_text)}, "
            f"payload is {len(payload)}"
        )
    return type_name, payload


class TreeEntry(NamedTuple):
    """Named tuple encapsulating a single tree entry."""

    mode: int
    name: bytes
    sha: ObjectID

    @property
    def kind(self) -> bytes:
        """Type of the object this entry points at."""
        if self.mode == TREE_MODE:
            return TREE
        return BLOB


def parse_tree(payload: bytes) -> Iterator[TreeEntry]:
    """Parse a tree payload.

    Args:
      payload: Serialized tree to parse
    Returns: iterator of TreeEntry, in serialized order
    Raises:
      CorruptObject: if an entry is truncated or malformed
    """
    count = 0
    length = len(payload)
    while count < length:
        mode_end = payload.find(b" ", count)
        name_end = payload.find(b"\0", mode_end + 1)
        if mode_end == -1 or name_end == -1:
            raise CorruptObject("truncated tree entry header")
        try:
            mode = int(payload[count:mode_end], 8)
        except ValueError as exc:
            raise CorruptObject(
                f"invalid tree entry mode {payload[count:mode_end]!r}"
            ) from exc
        name = payload[mode_end + 1 : name_end]
        count = name_end + 21
        if count > length:
            raise CorruptObject(f"truncated object id for tree entry {name!r}")
        yield TreeEntry(mode, name, sha_to_hex(payload[name_end + 1 : count]))


def serialize_tree(entries: Iterable[TreeEntry]) -> bytes:
    """Serialize tree entries, in the order given.

    Args:
      entries: Iterable over TreeEntry
    Returns: Serialized tree payload
    """
    chunks = []
    for mode, name, sha in entries:
        if b"\0" in name or b"/" in name:
            raise ValueError(f"invalid tree entry name {name!r}")
        chunks.append(f"{mode:o}".encode("ascii") + b" " + name + b"\0" + hex_to_sha(sha))
    return b"".join(chunks)


def _tree_sort_key(entry: TreeEntry) -> bytes:
    # Directories sort as if their name had a trailing slash.
    if entry.mode == TREE_MODE:
        return entry.name + b"/"
    return entry.name


def sorted_tree_items(entries: Iterable[TreeEntry]) -> list[TreeEntry]:
    """Return tree entries in the order git serializes them."""
    return sorted(entries, key=_tree_sort_key)


def pretty_format_tree_entry(entry: TreeEntry) -> str:
    """Format a tree entry the way ls-tree prints it."""
    return "{:06o} {} {}\t{}\n".format(
        entry.mode,
        entry.kind.decode("ascii"),
        entry.sha.decode("ascii"),
        entry.name.decode("utf-8", "replace"),
    )


def parse_timezone(text: bytes) -> int:
    """Parse a timezone offset like b"+0130" into seconds east of UTC."""
    if len(text) != 5 or text[:1] not in (b"+", b"-") or not text[1:].isdigit():
        raise CorruptObject(f"invalid timezone {text!r}")
    offset = int(text[1:3]) * 3600 + int(text[3:5]) * 60
    if text[:1] == b"-":
        offset = -offset
    return offset


def format_timezone(offset: int) -> bytes:
    """Format a UTC offset in seconds as b"+HHMM"."""
    if offset % 60 != 0:
        raise ValueError("Unable to handle non-minute offset.")
    sign = "-" if offset < 0 else "+"
    offset = abs(offset)
    return f"{sign}{offset // 3600:02d}{(offset // 60) % 60:02d}".encode("ascii")


def _parse_signature(value: bytes) -> tuple[bytes, int, int]:
    try:
        identity, timetext, timezonetext = value.rsplit(b" ", 2)
        return identity, int(timetext), parse_timezone(timezonetext)
    except ValueError as exc:
        raise CorruptObject(f"invalid signature line {value!r}") from exc


@dataclass
class Commit:
    """A commit: one tree snapshot, at most one parent, and a message."""

    type_name = COMMIT

    tree: ObjectID
    parent: Optional[ObjectID]
    author: bytes
    author_time: int
    author_timezone: int
    committer: bytes
    commit_time: int
    commit_timezone: int
    message: bytes

    @classmethod
    def from_payload(cls, payload: bytes) -> "Commit":
        """Parse the payload of a commit object.

        Raises:
          CorruptObject: if a required header is missing or malformed
          FormatError: if the commit has more than one parent
        """
        headers, sep, message = payload.partition(b"\n\n")
        if not sep:
            raise CorruptObject("commit has no header terminator")
        fields: dict[bytes, list[bytes]] = {}
        for line in headers.split(b"\n"):
            field, _, value = line.partition(b" ")
            fields.setdefault(field, []).append(value)
        try:
            [tree] = fields[_TREE_HEADER]
            [author] = fields[_AUTHOR_HEADER]
            [committer] = fields[_COMMITTER_HEADER]
        except (KeyError, ValueError) as exc:
            raise CorruptObject("commit lacks tree, author or committer") from exc
        if not valid_hexsha(tree):
            raise CorruptObject(f"invalid tree id {tree!r} in commit")
        parents = fields.get(_PARENT_HEADER, [])
        if len(parents) > 1:
            raise FormatError("merge commits are not supported")
        return cls(
            tree,
            parents[0] if parents else None,
            *_parse_signature(author),
            *_parse_signature(committer),
            message,
        )

    def as_payload(self) -> bytes:
        """Serialize this commit."""
        chunks = [_TREE_HEADER + b" " + self.tree + b"\n"]
        if self.parent is not None:
            chunks.append(_PARENT_HEADER + b" " + self.parent + b"\n")
        for header, identity, when, zone in (
            (_AUTHOR_HEADER, self.author, self.author_time, self.author_timezone),
            (_COMMITTER_HEADER, self.committer, self.commit_time, self.commit_timezone),
        ):
            chunks.append(
                b"%s %s %d %s\n" % (header, identity, when, format_timezone(zone))
            )
        chunks.append(b"\n")
        chunks.append(self.message)
        return b"".join(chunks)


def commit_tree_id(payload: bytes) -> ObjectID:
    """Extract the tree id of a commit payload.

    The tree header is always the first line of a commit, so its id sits at
    bytes 5..45.
    """
    sha = payload[5:45]
    if not payload.startswith(b"tree ") or not valid_hexsha(sha):
        raise CorruptObject("commit does not start with a tree header")
    return sha
