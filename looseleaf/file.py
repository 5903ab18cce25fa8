# file.py -- Safe access to files in the object store
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

"""Atomic file writes using git's lock file protocol."""

__all__ = [
    "FileLocked",
    "LockedFile",
    "ensure_dir_exists",
]

import os
import warnings
from types import TracebackType
from typing import Optional, Union

PathType = Union[str, "os.PathLike[str]"]


def ensure_dir_exists(dirname: PathType) -> None:
    """Ensure a directory exists, creating if necessary."""
    try:
        os.makedirs(dirname)
    except FileExistsError:
        pass


class FileLocked(Exception):
    """Another writer holds the lock for a file."""

    def __init__(self, filename: PathType, lockfilename: str) -> None:
        """Initialize FileLocked.

        Args:
          filename: Name of the file that is locked
          lockfilename: Name of the lock file
        """
        self.filename = filename
        self.lockfilename = lockfilename
        super().__init__(filename, lockfilename)


class LockedFile:
    """Write-only file that follows the git locking protocol.

    Writes to a file foo go to foo.lock, created exclusively so only one
    writer can hold it. close() renames foo.lock over foo; abort() removes it.
    Readers therefore see either no file or the complete contents.

    Note: You *must* call close() or abort(); using the object as a context
        manager does this for you.
    """

    def __init__(
        self, filename: PathType, mask: int = 0o444, fsync: bool = False
    ) -> None:
        self._filename = os.fspath(filename)
        self._lockfilename = self._filename + ".lock"
        self._fsync = fsync
        try:
            fd = os.open(
                self._lockfilename,
                os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0),
                mask,
            )
        except FileExistsError as exc:
            raise FileLocked(filename, self._lockfilename) from exc
        self._file = os.fdopen(fd, "wb")
        self._closed = False

    @property
    def closed(self) -> bool:
        """Return whether the file is closed."""
        return self._closed

    def write(self, data: bytes) -> int:
        """Write data to the lock file."""
        return self._file.write(data)

    def abort(self) -> None:
        """Close and discard the lockfile without touching the target.

        If the file is already closed, this is a no-op.
        """
        if self._closed:
            return
        self._file.close()
        try:
            os.remove(self._lockfilename)
        except FileNotFoundError:
            pass
        self._closed = True

    def close(self) -> None:
        """Close this file, moving the lockfile over the target.

        Raises:
          OSError: if the target could not be replaced. The lock file is
            removed in that case.
        """
        if self._closed:
            return
        self._file.flush()
        if self._fsync:
            os.fsync(self._file.fileno())
        self._file.close()
        try:
            os.replace(self._lockfilename, self._filename)
        finally:
            self.abort()

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            warnings.warn(f"unclosed {self!r}", ResourceWarning, stacklevel=2)
            self.abort()

    def __enter__(self) -> "LockedFile":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._filename!r})"
