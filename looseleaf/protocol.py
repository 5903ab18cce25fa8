# protocol.py -- Shared parts of the git protocols
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

"""pkt-line framing as used by the git wire protocol."""

__all__ = [
    "CAPABILITIES_REF",
    "FLUSH_PKT",
    "MAX_PKT_LEN",
    "ZERO_SHA",
    "Protocol",
    "extract_capabilities",
    "pkt_line",
    "pkt_seq",
]

from collections.abc import Callable, Iterator
from typing import Optional

from .errors import FormatError, TransportError

ZERO_SHA = b"0" * 40

FLUSH_PKT = b"0000"

CAPABILITIES_REF = b"capabilities^{}"

# Largest pkt-line git will send, length prefix included
MAX_PKT_LEN = 65520


def pkt_line(data: Optional[bytes]) -> bytes:
    """Wrap data in a pkt-line.

    Args:
      data: The data to wrap, as bytes or None.
    Returns: The data prefixed with its length in pkt-line format; if data was
        None, returns the flush-pkt ('0000').
    """
    if data is None:
        return FLUSH_PKT
    return ("%04x" % (len(data) + 4)).encode("ascii") + data


def pkt_seq(*seq: Optional[bytes]) -> bytes:
    """Wrap a sequence of data in pkt-lines, followed by a flush-pkt."""
    return b"".join([pkt_line(s) for s in seq]) + pkt_line(None)


class Protocol:
    """Class for interacting with a remote git process over the wire.

    Parts of the git wire protocol use 'pkt-lines' to communicate. A pkt-line
    consists of the length of the line as a 4-byte hex string, followed by the
    payload data. The length includes the 4-byte header. The special line
    '0000' indicates the end of a section of input and is called a 'flush-pkt'.
    """

    def __init__(
        self,
        read: Callable[[int], bytes],
        write: Callable[[bytes], Optional[int]],
    ) -> None:
        self.read = read
        self.write = write

    def read_pkt_line(self) -> Optional[bytes]:
        """Reads a pkt-line from the remote git process.

        Returns: The next string from the stream, or None for a flush-pkt
        Raises:
          TransportError: if the stream ends before a length header
          FormatError: if the length header is malformed or the payload is
            cut short
        """
        sizestr = self.read(4)
        if not sizestr:
            raise TransportError("the remote end hung up unexpectedly")
        if len(sizestr) != 4:
            raise FormatError(f"truncated pkt-line length {sizestr!r}")
        try:
            size = int(sizestr, 16)
        except ValueError as exc:
            raise FormatError(f"invalid pkt-line length {sizestr!r}") from exc
        if size == 0:
            return None
        if size < 4 or size > MAX_PKT_LEN:
            raise FormatError(f"invalid pkt-line length {size}")
        pkt_contents = self.read(size - 4)
        if len(pkt_contents) != size - 4:
            raise FormatError(
                f"Length of pkt read {len(pkt_contents) + 4:04x} does not match "
                f"length prefix {size:04x}"
            )
        return pkt_contents

    def read_pkt_seq(self) -> Iterator[bytes]:
        """Read a sequence of pkt-lines from the remote git process.

        Returns: Yields each line of data up to but not including the next
            flush-pkt.
        """
        pkt = self.read_pkt_line()
        while pkt is not None:
            yield pkt
            pkt = self.read_pkt_line()

    def write_pkt_line(self, line: Optional[bytes]) -> None:
        """Sends a pkt-line to the remote git process.

        Args:
          line: A string containing the data to send, or None to send a
            flush packet.
        """
        self.write(pkt_line(line))


def extract_capabilities(text: bytes) -> tuple[bytes, list[bytes]]:
    """Extract a capabilities list from a string, if present.

    Args:
      text: String to extract from
    Returns: Tuple with text with capabilities removed and list of capabilities
    """
    if b"\0" not in text:
        return text, []
    text, capabilities = text.rstrip().split(b"\0", 1)
    return (text, capabilities.strip().split(b" "))
