# errors.py -- errors for looseleaf
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

"""looseleaf exception classes.

Filesystem failures are not wrapped; they surface as the builtin OSError.
"""

import binascii
from typing import Optional, Union


class LooseleafError(Exception):
    """Base class for all looseleaf errors."""


class NotFound(LooseleafError):
    """A requested object or reference does not exist."""


class ObjectMissing(NotFound):
    """Indicates that a requested object is missing from the store."""

    def __init__(self, sha: bytes, *args: object) -> None:
        """Initialize an ObjectMissing exception.

        Args:
            sha: The hex SHA of the missing object.
            *args: Additional positional arguments.
        """
        self.sha = sha
        super().__init__(f"{sha.decode('ascii', 'replace')} is not in the object store")


class NotGitRepository(NotFound):
    """No repository metadata directory was found."""


class CorruptObject(LooseleafError):
    """Stored or transferred object data could not be decompressed or parsed."""


class FormatError(LooseleafError):
    """Base class for malformed pack, delta or object headers."""


class ApplyDeltaError(FormatError):
    """Indicates that applying a delta failed."""


class ChecksumMismatch(FormatError):
    """A checksum didn't match the expected contents."""

    def __init__(
        self,
        expected: Union[bytes, str],
        got: Union[bytes, str],
        extra: Optional[str] = None,
    ) -> None:
        """Initialize a ChecksumMismatch exception.

        Args:
          expected: The expected checksum value (binary or hex).
          got: The actual checksum value (binary or hex).
          extra: Optional additional error information.
        """
        self.expected = _display_sha(expected)
        self.got = _display_sha(got)
        self.extra = extra
        message = f"Checksum mismatch: Expected {self.expected}, got {self.got}"
        if extra is not None:
            message += f"; {extra}"
        super().__init__(message)


def _display_sha(sha: Union[bytes, str]) -> str:
    if isinstance(sha, bytes) and len(sha) == 20:
        return binascii.hexlify(sha).decode("ascii")
    if isinstance(sha, bytes):
        return sha.decode("ascii", "replace")
    return sha


class TransportError(LooseleafError):
    """Talking to a remote failed at the network or HTTP level."""


class FetchError(LooseleafError):
    """A fetch failed; records the pipeline state that was active."""

    def __init__(self, state: str, cause: BaseException) -> None:
        """Initialize a FetchError.

        Args:
          state: Name of the fetch state that failed (e.g. "DISCOVERING")
          cause: The underlying exception
        """
        self.state = state
        self.cause = cause
        super().__init__(f"fetch failed while {state.lower()}: {cause}")

    @property
    def is_transport_failure(self) -> bool:
        """Whether the underlying error came from the network layer."""
        return isinstance(self.cause, TransportError)
