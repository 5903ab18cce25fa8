# repo.py -- For dealing with git repositories.
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

"""Repository access.

A :class:`Repo` ties a :class:`~looseleaf.config.RepoConfig` to the
object store under its metadata directory and exposes the object-level
operations on it.
"""

__all__ = [
    "DEFAULT_BRANCH",
    "HEAD_CONTENTS",
    "Repo",
]

import os
from typing import Optional, Union

from .config import RepoConfig
from .errors import NotGitRepository
from .file import LockedFile, ensure_dir_exists
from .log_utils import getLogger
from .object_store import DiskObjectStore, read_tree, write_commit
from .objects import BLOB, ObjectID, TreeEntry
from .worktree import FilesystemDirectory, materialize, write_tree

logger = getLogger(__name__)

DEFAULT_BRANCH = b"main"

HEAD_CONTENTS = b"ref: refs/heads/" + DEFAULT_BRANCH + b"\n"


class Repo:
    """A git repository backed by local disk.

    To open an existing repository, call the constructor with its
    configuration (or working tree path). To create a new repository, use
    the Repo.init class method.

    Attributes:
      config: Configuration the repository was opened with
      object_store: Loose object store under the metadata directory
    """

    def __init__(self, config: Union[RepoConfig, str, "os.PathLike[str]"]) -> None:
        """Open a repository on disk.

        Args:
          config: RepoConfig, or the path of the working tree
        Raises:
          NotGitRepository: if the metadata directory does not exist
        """
        if not isinstance(config, RepoConfig):
            config = RepoConfig(working_directory=os.fspath(config))
        if not os.path.isdir(config.object_dir):
            raise NotGitRepository(
                f"No git repository was found at {config.store_root}"
            )
        self.config = config
        self.object_store = DiskObjectStore(config.object_dir)

    def __repr__(self) -> str:
        return f"<Repo at {self.config.working_directory!r}>"

    def __enter__(self) -> "Repo":
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def close(self) -> None:
        """Close any files opened by this repository."""
        # Loose objects are read and written one file at a time; nothing
        # stays open between calls.

    @property
    def path(self) -> str:
        """Path of the working tree."""
        return self.config.working_directory

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self.config.store_root

    @classmethod
    def init(
        cls, config: Union[RepoConfig, str, "os.PathLike[str]"]
    ) -> "Repo":
        """Create a new repository.

        Running it on an existing repository is harmless; HEAD is reset to
        the default branch.

        Args:
          config: RepoConfig, or the path of the working tree
        Returns: `Repo` instance
        """
        if not isinstance(config, RepoConfig):
            config = RepoConfig(working_directory=os.fspath(config))
        for path in (config.store_root, config.object_dir, config.refs_dir):
            ensure_dir_exists(path)
        with LockedFile(os.path.join(config.store_root, "HEAD"), mask=0o644) as f:
            f.write(HEAD_CONTENTS)
        logger.debug("initialized repository in %s", config.store_root)
        return cls(config)

    def hash_object(self, data: bytes, type_name: bytes = BLOB) -> ObjectID:
        """Store data as an object and return its id."""
        return self.object_store.put(type_name, data)

    def get_object(self, sha: ObjectID) -> tuple[bytes, bytes]:
        """Return (type name, payload) of a stored object."""
        return self.object_store.get(sha)

    def write_tree(self) -> ObjectID:
        """Snapshot the working tree and return the root tree id.

        The metadata directory is left out when it lives inside the working
        tree, whatever its name.
        """
        exclude: list[bytes] = []
        relpath = os.path.relpath(self.controldir(), self.config.working_directory)
        if relpath != os.curdir and relpath.split(os.sep)[0] != os.pardir:
            exclude.append(os.fsencode(relpath).replace(os.fsencode(os.sep), b"/"))
        return write_tree(
            self.object_store,
            FilesystemDirectory(self.config.working_directory),
            exclude=exclude,
        )

    def read_tree(self, sha: ObjectID) -> list[TreeEntry]:
        """Return the entries of a tree, in serialized order."""
        return read_tree(self.object_store, sha)

    def write_commit(
        self,
        tree: ObjectID,
        message: bytes,
        parent: Optional[ObjectID] = None,
        commit_time: Optional[int] = None,
        commit_timezone: Optional[int] = None,
    ) -> ObjectID:
        """Create a commit of a tree, as the configured identity."""
        return write_commit(
            self.object_store,
            tree,
            parent,
            message,
            self.config.identity,
            commit_time=commit_time,
            commit_timezone=commit_timezone,
        )

    def materialize(self, tree: ObjectID) -> None:
        """Check a tree out into the working tree."""
        materialize(
            self.object_store, tree, FilesystemDirectory(self.config.working_directory)
        )
