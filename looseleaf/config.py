# config.py -- Explicit configuration for looseleaf operations
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

"""Configuration passed explicitly to every looseleaf operation.

Nothing in looseleaf reads or changes the process working directory; the
paths an operation works on always come from a RepoConfig.
"""

__all__ = [
    "CONTROLDIR",
    "DEFAULT_IDENTITY",
    "OBJECTDIR",
    "REFSDIR",
    "RepoConfig",
    "default_user_agent_string",
]

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Optional

import looseleaf

CONTROLDIR = ".git"
OBJECTDIR = "objects"
REFSDIR = "refs"

DEFAULT_IDENTITY = b"looseleaf <looseleaf@localhost>"


def default_user_agent_string() -> str:
    """Return the default user agent string for looseleaf."""
    # Start user agent with "git/", because GitHub requires this.
    return "git/looseleaf-{}".format(".".join([str(x) for x in looseleaf.__version__]))


@dataclass(frozen=True)
class RepoConfig:
    """Where a repository lives and how to talk about it.

    Attributes:
      working_directory: Root of the working tree
      store_root: Repository metadata directory (objects, refs, HEAD);
        defaults to ``<working_directory>/.git``
      identity: Author and committer used for new commits
      user_agent: User agent sent to HTTP remotes
      http_timeout: Timeout in seconds for HTTP requests; None waits forever
    """

    working_directory: str
    store_root: str = ""
    identity: bytes = DEFAULT_IDENTITY
    user_agent: str = field(default_factory=default_user_agent_string)
    http_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        working_directory = os.path.abspath(os.fspath(self.working_directory))
        object.__setattr__(self, "working_directory", working_directory)
        if not self.store_root:
            object.__setattr__(
                self, "store_root", os.path.join(working_directory, CONTROLDIR)
            )
        else:
            object.__setattr__(
                self, "store_root", os.path.abspath(os.fspath(self.store_root))
            )

    @property
    def object_dir(self) -> str:
        """Directory holding the loose objects."""
        return os.path.join(self.store_root, OBJECTDIR)

    @property
    def refs_dir(self) -> str:
        """Directory holding references."""
        return os.path.join(self.store_root, REFSDIR)

    def with_working_directory(self, path: str) -> "RepoConfig":
        """Return a copy rooted at another working tree.

        The metadata directory moves along with it.
        """
        return replace(self, working_directory=path, store_root="")

    @classmethod
    def from_environ(
        cls,
        working_directory: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "RepoConfig":
        """Build a configuration from the environment.

        Honours GIT_DIR for the metadata directory and GIT_AUTHOR_NAME /
        GIT_AUTHOR_EMAIL for the commit identity. Unset values fall back to
        the defaults.

        Args:
          working_directory: Working tree root (defaults to the current
            directory)
          environ: Environment mapping (defaults to os.environ)
        """
        if environ is None:
            environ = os.environ
        if working_directory is None:
            working_directory = os.getcwd()
        store_root = environ.get("GIT_DIR", "")
        identity = _identity_from_environ(environ)
        return cls(
            working_directory=working_directory,
            store_root=store_root,
            identity=identity,
        )


def _identity_from_environ(environ: Mapping[str, str]) -> bytes:
    user = environ.get("GIT_AUTHOR_NAME")
    email = environ.get("GIT_AUTHOR_EMAIL")
    if user is None and email is None:
        return DEFAULT_IDENTITY
    default_user, _, default_email = DEFAULT_IDENTITY.partition(b" <")
    user_bytes = user.encode("utf-8") if user is not None else default_user
    if email is not None:
        email_bytes = email.encode("utf-8")
    else:
        email_bytes = default_email[:-1]
    if email_bytes.startswith(b"<") and email_bytes.endswith(b">"):
        email_bytes = email_bytes[1:-1]
    return user_bytes + b" <" + email_bytes + b">"
