# pack.py -- For dealing with packed git objects.
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

"""Decoding (and, for tests and tooling, encoding) of git pack streams.

A pack is a 12 byte header (b"PACK", version, object count), followed by
the objects, followed by the SHA1 of everything before it. Each object has
a variable-length header carrying its type and uncompressed size, followed
by a zlib stream. Reference deltas additionally carry the 20-byte id of
their base object between the header and the zlib stream.

Packs are never kept as a unit: unpack_pack() resolves every entry and
writes it to an object store as a loose object.
"""

__all__ = [
    "OFS_DELTA",
    "PACK_MAGIC",
    "REF_DELTA",
    "PackCursor",
    "UnpackedEntry",
    "apply_delta",
    "create_delta",
    "encode_copy_operation",
    "encode_insert_operation",
    "get_delta_header_size",
    "iter_pack_entries",
    "pack_object_header",
    "read_pack_header",
    "resolve_entry",
    "unpack_object_header",
    "unpack_pack",
    "verify_pack_checksum",
    "write_pack_data",
]

import struct
import zlib
from collections.abc import Iterator, Sequence
from difflib import SequenceMatcher
from hashlib import sha1
from typing import Optional

from .errors import ApplyDeltaError, ChecksumMismatch, CorruptObject, FormatError
from .log_utils import getLogger
from .object_store import BaseObjectStore
from .objects import (
    ObjectID,
    sha_to_hex,
    type_name_from_num,
    type_num_from_name,
)

logger = getLogger(__name__)

OFS_DELTA = 6
REF_DELTA = 7

PACK_MAGIC = b"PACK"
PACK_HEADER_SIZE = 12
PACK_CHECKSUM_SIZE = 20

# A 64-bit size needs at most 10 groups of 7 bits (the first group has 4).
MAX_SIZE_BYTES = 10

# A copy instruction with no length bytes copies this many bytes.
DEFAULT_COPY_LEN = 0x10000

# Copy lengths written by create_delta; version 2 packs cap them at 64K.
_MAX_COPY_LEN = 0xFFFF

_ZLIB_BUFSIZE = 65536


class PackCursor:
    """Bounds-checked read position within a pack buffer."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = memoryview(data)
        if offset < 0 or offset > len(self._data):
            raise FormatError(f"offset {offset} outside of pack data")
        self._offset = offset

    @property
    def offset(self) -> int:
        """Position of the next byte to be read."""
        return self._offset

    def remaining(self) -> int:
        """Number of bytes left to read."""
        return len(self._data) - self._offset

    def read_u8(self) -> int:
        """Read a single byte."""
        if self._offset >= len(self._data):
            raise FormatError(f"unexpected end of pack data at offset {self._offset}")
        value = self._data[self._offset]
        self._offset += 1
        return value

    def read_n(self, n: int) -> bytes:
        """Read exactly n bytes."""
        if n < 0 or self.remaining() < n:
            raise FormatError(
                f"unexpected end of pack data: wanted {n} bytes at offset "
                f"{self._offset}, {self.remaining()} left"
            )
        ret = bytes(self._data[self._offset : self._offset + n])
        self._offset += n
        return ret

    def read_u32(self) -> int:
        """Read a big-endian 32-bit unsigned integer."""
        (value,) = struct.unpack(">L", self.read_n(4))
        return value

    def read_zlib(self, buffer_size: int = _ZLIB_BUFSIZE) -> bytes:
        """Inflate the zlib stream starting at the current position.

        The decompressor decides where the stream ends; the cursor is left
        just past the last compressed byte.

        Raises:
          CorruptObject: if the stream is corrupt or truncated
        """
        decomp = zlib.decompressobj()
        chunks = []
        pos = self._offset
        end = len(self._data)
        try:
            while not decomp.eof:
                if pos >= end:
                    raise CorruptObject(
                        f"EOF before end of zlib stream starting at {self._offset}"
                    )
                add = self._data[pos : pos + buffer_size]
                pos += len(add)
                chunks.append(decomp.decompress(add))
        except zlib.error as exc:
            raise CorruptObject(
                f"corrupt zlib stream at offset {self._offset}: {exc}"
            ) from exc
        self._offset = pos - len(decomp.unused_data)
        return b"".join(chunks)


class UnpackedEntry:
    """An entry read from a pack stream, before delta resolution.

    Attributes:
      offset: Offset of the entry header within the pack
      pack_type_num: Type number from the entry header
      size: Uncompressed size declared in the entry header
      delta_base: Hex id of the base object for ref-deltas, otherwise None
      data: Decompressed data: the object payload, or the delta
    """

    __slots__ = ["data", "delta_base", "offset", "pack_type_num", "size"]

    def __init__(
        self,
        offset: int,
        pack_type_num: int,
        size: int,
        data: bytes,
        delta_base: Optional[ObjectID] = None,
    ) -> None:
        self.offset = offset
        self.pack_type_num = pack_type_num
        self.size = size
        self.data = data
        self.delta_base = delta_base

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnpackedEntry):
            return False
        return all(getattr(self, s) == getattr(other, s) for s in self.__slots__)

    def __repr__(self) -> str:
        data = [f"{s}={getattr(self, s)!r}" for s in self.__slots__ if s != "data"]
        return "{}({})".format(self.__class__.__name__, ", ".join(data))


def verify_pack_checksum(data: bytes) -> bytes:
    """Check the trailing SHA1 of a pack and return the pack without it.

    Raises:
      FormatError: if the data is too short to be a pack
      ChecksumMismatch: if the trailer does not match the contents
    """
    if len(data) < PACK_HEADER_SIZE + PACK_CHECKSUM_SIZE:
        raise FormatError(f"pack data too short ({len(data)} bytes)")
    body = data[:-PACK_CHECKSUM_SIZE]
    stored = data[-PACK_CHECKSUM_SIZE:]
    actual = sha1(body).digest()
    if actual != stored:
        raise ChecksumMismatch(stored, actual, "pack trailer")
    return body


def read_pack_header(cursor: PackCursor) -> tuple[int, int]:
    """Read the header of a pack.

    Returns: Tuple of (pack version, number of objects)
    """
    magic = cursor.read_n(4)
    if magic != PACK_MAGIC:
        raise FormatError(f"Invalid pack header {magic!r}")
    version = cursor.read_u32()
    if version not in (2, 3):
        raise FormatError(f"Unsupported pack version {version}")
    num_objects = cursor.read_u32()
    return version, num_objects


def unpack_object_header(cursor: PackCursor) -> tuple[int, int, int]:
    """Read the type and size header of a pack entry.

    Returns: Tuple of (type number, uncompressed size, header bytes used)
    Raises:
      FormatError: if the size does not terminate within MAX_SIZE_BYTES
    """
    byte = cursor.read_u8()
    used = 1
    type_num = (byte >> 4) & 0x07
    size = byte & 0x0F
    shift = 4
    while byte & 0x80:
        if used >= MAX_SIZE_BYTES:
            raise FormatError(
                f"object header at offset {cursor.offset - used} does not terminate"
            )
        byte = cursor.read_u8()
        used += 1
        size |= (byte & 0x7F) << shift
        shift += 7
    return type_num, size, used


def iter_pack_entries(data: bytes, verify_checksum: bool = True) -> Iterator[UnpackedEntry]:
    """Iterate over the entries of a pack.

    Args:
      data: Pack data, starting with b"PACK" and including the trailer
      verify_checksum: Whether to check the trailer (it is stripped either way)
    Returns: iterator over UnpackedEntry, in pack order
    Raises:
      FormatError: for malformed headers, unsupported entry types or
        trailing garbage
      CorruptObject: for corrupt zlib data or size mismatches
    """
    if verify_checksum:
        body = verify_pack_checksum(data)
    else:
        if len(data) < PACK_HEADER_SIZE + PACK_CHECKSUM_SIZE:
            raise FormatError(f"pack data too short ({len(data)} bytes)")
        body = data[:-PACK_CHECKSUM_SIZE]
    cursor = PackCursor(body)
    version, num_objects = read_pack_header(cursor)
    logger.debug("pack version %d with %d objects", version, num_objects)
    for _ in range(num_objects):
        offset = cursor.offset
        type_num, size, _used = unpack_object_header(cursor)
        delta_base = None
        if type_num == REF_DELTA:
            delta_base = sha_to_hex(cursor.read_n(20))
        elif type_num == OFS_DELTA:
            raise FormatError(f"offset delta at {offset}: offset deltas are not supported")
        else:
            # Validates the type number.
            type_name_from_num(type_num)
        decomp = cursor.read_zlib()
        if len(decomp) != size:
            raise CorruptObject(
                f"entry at offset {offset} declares {size} bytes, "
                f"inflates to {len(decomp)}"
            )
        yield UnpackedEntry(offset, type_num, size, decomp, delta_base)
    if cursor.remaining():
        raise FormatError(
            f"{cursor.remaining()} bytes of trailing data after {num_objects} objects"
        )


def get_delta_header_size(delta: bytes, index: int) -> tuple[int, int]:
    """Decode one of the two size fields at the start of a delta.

    Returns: Tuple of (size, index of the first byte after the field)
    """
    size = 0
    shift = 0
    while True:
        if index >= len(delta):
            raise ApplyDeltaError("delta header truncated")
        if shift >= 7 * MAX_SIZE_BYTES:
            raise ApplyDeltaError("delta header size does not terminate")
        cmd = delta[index]
        index += 1
        size |= (cmd & 0x7F) << shift
        shift += 7
        if not cmd & 0x80:
            return size, index


def apply_delta(src_buf: bytes, delta: bytes) -> bytes:
    """Reconstruct a target object from a base object and a delta.

    Args:
      src_buf: Contents of the base object
      delta: Decompressed delta data
    Returns: Contents of the target object
    Raises:
      ApplyDeltaError: if the delta does not fit the base or is malformed
    """
    src_size, index = get_delta_header_size(delta, 0)
    dest_size, index = get_delta_header_size(delta, index)
    if src_size != len(src_buf):
        raise ApplyDeltaError(
            f"Unexpected source buffer size: {src_size} vs {len(src_buf)}"
        )
    out = []
    out_len = 0
    delta_length = len(delta)
    while index < delta_length:
        cmd = delta[index]
        index += 1
        if cmd & 0x80:
            cp_off = 0
            for i in range(4):
                if cmd & (1 << i):
                    if index >= delta_length:
                        raise ApplyDeltaError("copy instruction truncated")
                    cp_off |= delta[index] << (i * 8)
                    index += 1
            cp_size = 0
            for i in range(3):
                if cmd & (1 << (4 + i)):
                    if index >= delta_length:
                        raise ApplyDeltaError("copy instruction truncated")
                    cp_size |= delta[index] << (i * 8)
                    index += 1
            if cp_size == 0:
                cp_size = DEFAULT_COPY_LEN
            if cp_off + cp_size > src_size:
                raise ApplyDeltaError(
                    f"copy of {cp_size} bytes at {cp_off} exceeds base size {src_size}"
                )
            out.append(src_buf[cp_off : cp_off + cp_size])
            out_len += cp_size
        elif cmd != 0:
            if index + cmd > delta_length:
                raise ApplyDeltaError("insert instruction truncated")
            out.append(delta[index : index + cmd])
            out_len += cmd
            index += cmd
        else:
            raise ApplyDeltaError("Invalid opcode 0")
    if out_len != dest_size:
        raise ApplyDeltaError(f"dest size incorrect: expected {dest_size}, got {out_len}")
    return b"".join(out)


def resolve_entry(
    entry: UnpackedEntry, object_store: BaseObjectStore
) -> tuple[bytes, bytes]:
    """Turn a pack entry into a full object.

    Ref-deltas are applied against their base, which must already be in
    object_store; the result has the base's type.

    Returns: Tuple of (type name, payload)
    Raises:
      ObjectMissing: if the delta base is not in the store
    """
    if entry.pack_type_num != REF_DELTA:
        return type_name_from_num(entry.pack_type_num), entry.data
    assert entry.delta_base is not None
    base_type, base_data = object_store.get(entry.delta_base)
    return base_type, apply_delta(base_data, entry.data)


def unpack_pack(
    data: bytes, object_store: BaseObjectStore, verify_checksum: bool = True
) -> list[ObjectID]:
    """Resolve every object in a pack and add it to an object store.

    Entries are processed strictly in order, so a ref-delta can only use
    a base that is already stored or that appears earlier in the pack.
    The first bad entry aborts the unpack; objects stored before it stay.

    Returns: list of object ids, in pack order
    """
    shas = []
    for entry in iter_pack_entries(data, verify_checksum=verify_checksum):
        type_name, payload = resolve_entry(entry, object_store)
        shas.append(object_store.put(type_name, payload))
    logger.info("unpacked %d objects", len(shas))
    return shas


def _delta_encode_size(size: int) -> bytes:
    ret = bytearray()
    c = size & 0x7F
    size >>= 7
    while size:
        ret.append(c | 0x80)
        c = size & 0x7F
        size >>= 7
    ret.append(c)
    return bytes(ret)


def encode_copy_operation(start: int, length: int) -> bytes:
    """Encode a copy instruction; only non-zero bytes are emitted."""
    if not 0 < length <= DEFAULT_COPY_LEN:
        raise ValueError(f"invalid copy length {length}")
    scratch = bytearray([0x80])
    for i in range(4):
        if start & 0xFF << i * 8:
            scratch.append((start >> i * 8) & 0xFF)
            scratch[0] |= 1 << i
    if length != DEFAULT_COPY_LEN:
        for i in range(3):
            if length & 0xFF << i * 8:
                scratch.append((length >> i * 8) & 0xFF)
                scratch[0] |= 1 << (4 + i)
    return bytes(scratch)


def encode_insert_operation(data: bytes) -> bytes:
    """Encode literal data as one or more insert instructions."""
    chunks = []
    for o in range(0, len(data), 127):
        piece = data[o : o + 127]
        chunks.append(bytes([len(piece)]) + piece)
    return b"".join(chunks)


def create_delta(base_buf: bytes, target_buf: bytes) -> bytes:
    """Use difflib to work out how to transform base_buf into target_buf."""
    chunks = [_delta_encode_size(len(base_buf)), _delta_encode_size(len(target_buf))]
    seq = SequenceMatcher(isjunk=None, a=base_buf, b=target_buf, autojunk=False)
    for opcode, i1, i2, j1, j2 in seq.get_opcodes():
        # Deletions need no instruction: the data is simply not copied.
        if opcode == "equal":
            copy_start = i1
            copy_len = i2 - i1
            while copy_len > 0:
                to_copy = min(copy_len, _MAX_COPY_LEN)
                chunks.append(encode_copy_operation(copy_start, to_copy))
                copy_start += to_copy
                copy_len -= to_copy
        elif opcode in ("replace", "insert"):
            chunks.append(encode_insert_operation(target_buf[j1:j2]))
    return b"".join(chunks)


def pack_object_header(
    type_num: int, size: int, delta_base: Optional[ObjectID] = None
) -> bytes:
    """Create a pack entry header.

    Args:
      type_num: Numeric type of the entry
      size: Uncompressed size of the entry data
      delta_base: Hex id of the base object, for ref-deltas
    """
    header = bytearray()
    c = (type_num << 4) | (size & 0x0F)
    size >>= 4
    while size:
        header.append(c | 0x80)
        c = size & 0x7F
        size >>= 7
    header.append(c)
    if type_num == REF_DELTA:
        if delta_base is None:
            raise ValueError("ref-delta entries need a base object id")
        header += bytes.fromhex(delta_base.decode("ascii"))
    return bytes(header)


def write_pack_data(
    entries: Sequence[tuple[bytes, bytes, Optional[ObjectID]]],
    compression_level: int = -1,
) -> bytes:
    """Build a version 2 pack.

    Args:
      entries: Sequence of (type name, data, delta base) tuples. With a
        delta base, data is a delta against it and the entry is written as
        a ref-delta; otherwise data is the object payload.
      compression_level: zlib compression level
    Returns: Complete pack, including the trailing checksum
    """
    chunks = [PACK_MAGIC, struct.pack(">LL", 2, len(entries))]
    for type_name, data, delta_base in entries:
        if delta_base is None:
            type_num = type_num_from_name(type_name)
        else:
            type_num = REF_DELTA
        chunks.append(pack_object_header(type_num, len(data), delta_base))
        chunks.append(zlib.compress(data, compression_level))
    body = b"".join(chunks)
    return body + sha1(body).digest()
