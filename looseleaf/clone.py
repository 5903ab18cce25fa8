# clone.py -- Cloning a remote repository over smart HTTP
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

"""Clone pipeline.

A clone runs through a fixed sequence of states::

  DISCOVERING -> NEGOTIATING -> RECEIVING -> UNPACKING -> MATERIALIZING -> DONE

Any failure stops the pipeline and is raised as a FetchError recording the
state that was active. There are no retries.
"""

__all__ = [
    "FetchState",
    "Fetcher",
    "do_clone",
]

import enum
import os
from typing import TYPE_CHECKING, Optional

from .client import HttpGitClient, extract_pack_data
from .config import RepoConfig
from .errors import FetchError, FormatError, LooseleafError
from .file import ensure_dir_exists
from .log_utils import getLogger
from .objects import COMMIT, ObjectID, commit_tree_id
from .pack import unpack_pack
from .repo import Repo
from .worktree import FilesystemDirectory, materialize

if TYPE_CHECKING:
    import urllib3

logger = getLogger(__name__)


class FetchState(enum.Enum):
    """Stages of a clone."""

    DISCOVERING = "discovering"
    NEGOTIATING = "negotiating"
    RECEIVING = "receiving"
    UNPACKING = "unpacking"
    MATERIALIZING = "materializing"
    DONE = "done"


class Fetcher:
    """Drives one clone of a remote into a local repository.

    Attributes:
      state: Current FetchState
      head: Id the remote HEAD points at, once discovered
      objects: Ids of the unpacked objects, once unpacked
    """

    def __init__(self, client: HttpGitClient, repo: Repo) -> None:
        self.client = client
        self.repo = repo
        self.state = FetchState.DISCOVERING
        self.head: Optional[ObjectID] = None
        self.objects: list[ObjectID] = []
        self._response: bytes = b""
        self._pack_data: bytes = b""

    def _transition(self, state: FetchState) -> None:
        logger.debug("fetch state %s -> %s", self.state.name, state.name)
        self.state = state

    def _discover(self) -> None:
        self.head = self.client.get_head()
        logger.debug("remote HEAD is %s", self.head.decode("ascii"))

    def _negotiate(self) -> None:
        assert self.head is not None
        self._response = self.client.fetch_pack(self.head)

    def _receive(self) -> None:
        self._pack_data = extract_pack_data(self._response)
        self._response = b""

    def _unpack(self) -> None:
        self.objects = unpack_pack(self._pack_data, self.repo.object_store)
        self._pack_data = b""

    def _materialize(self) -> None:
        assert self.head is not None
        type_name, payload = self.repo.object_store.get(self.head)
        if type_name != COMMIT:
            raise FormatError(
                f"remote HEAD {self.head.decode('ascii')} is a "
                f"{type_name.decode('ascii')}, not a commit"
            )
        tree = commit_tree_id(payload)
        materialize(
            self.repo.object_store,
            tree,
            FilesystemDirectory(self.repo.config.working_directory),
        )

    def run(self) -> ObjectID:
        """Run the whole pipeline.

        Returns: Id of the checked out commit
        Raises:
          FetchError: wrapping the first failure
        """
        steps = [
            (FetchState.DISCOVERING, self._discover),
            (FetchState.NEGOTIATING, self._negotiate),
            (FetchState.RECEIVING, self._receive),
            (FetchState.UNPACKING, self._unpack),
            (FetchState.MATERIALIZING, self._materialize),
        ]
        for state, step in steps:
            if state is not self.state:
                self._transition(state)
            try:
                step()
            except (LooseleafError, OSError) as exc:
                logger.debug("fetch failed in state %s: %s", state.name, exc)
                raise FetchError(state.name, exc) from exc
        self._transition(FetchState.DONE)
        assert self.head is not None
        return self.head


def do_clone(
    url: str,
    target: "str | os.PathLike[str]",
    config: Optional[RepoConfig] = None,
    pool_manager: Optional["urllib3.PoolManager"] = None,
) -> Repo:
    """Clone a remote repository into a local directory.

    The target directory is created if needed and initialized as a
    repository before anything is fetched.

    Args:
      url: Base URL of the remote repository
      target: Working tree to clone into
      config: Configuration to clone with; its working directory is replaced
        by target
      pool_manager: urllib3 pool manager to send requests through
    Returns: The new Repo
    Raises:
      FetchError: if any stage of the clone fails
    """
    target = os.fspath(target)
    if config is None:
        config = RepoConfig(working_directory=target)
    else:
        config = config.with_working_directory(target)
    ensure_dir_exists(config.working_directory)
    repo = Repo.init(config)
    client = HttpGitClient(url, pool_manager=pool_manager, config=config)
    head = Fetcher(client, repo).run()
    logger.info("cloned %s at %s into %s", url, head.decode("ascii"), target)
    return repo
