# porcelain.py -- Porcelain-like layer on top of looseleaf
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

"""Simple wrapper that provides porcelain-like functions on top of looseleaf.

Currently implemented:
 * cat_file
 * clone
 * commit_tree
 * hash_object
 * init
 * ls_tree
 * write_tree

These functions are meant to behave similarly to the git subcommands.
Differences in behaviour are considered bugs.

Functions should generally accept both unicode strings and bytestrings
"""

__all__ = [
    "cat_file",
    "clone",
    "commit_tree",
    "hash_object",
    "init",
    "ls_tree",
    "open_repo_closing",
    "write_tree",
]

import os
import sys
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import TYPE_CHECKING, BinaryIO, Optional, TypeVar, Union, cast

from . import objects
from .clone import do_clone
from .config import RepoConfig
from .objects import BLOB, TREE, ObjectID, parse_tree, pretty_format_tree_entry
from .repo import Repo

if TYPE_CHECKING:
    import urllib3

T = TypeVar("T", bound=Repo)

RepoPath = Union[str, "os.PathLike[str]", Repo]

DEFAULT_ENCODING = "utf-8"

default_bytes_out_stream: BinaryIO = cast(BinaryIO, getattr(sys.stdout, "buffer", sys.stdout))


@contextmanager
def _noop_context_manager(obj: T) -> Iterator[T]:
    """Context manager that has the same api as closing but does nothing."""
    yield obj


def open_repo_closing(
    path_or_repo: RepoPath,
) -> AbstractContextManager[Repo]:
    """Open an argument that can be a repository or a path for a repository.

    returns a context manager that will close the repo on exit if the argument
    is a path, else does nothing if the argument is a repo.
    """
    if isinstance(path_or_repo, Repo):
        return _noop_context_manager(path_or_repo)
    return Repo(RepoConfig.from_environ(os.fspath(path_or_repo)))


def _to_bytes(value: Union[str, bytes], encoding: str = DEFAULT_ENCODING) -> bytes:
    if isinstance(value, str):
        return value.encode(encoding)
    return value


def init(
    path: Union[str, "os.PathLike[str]"] = ".",
    config: Optional[RepoConfig] = None,
) -> Repo:
    """Create a new git repository.

    Args:
      path: Path to the working tree; created if missing
      config: Configuration to use; defaults to one built from the
        environment for path
    Returns: A Repo instance
    """
    if config is None:
        config = RepoConfig.from_environ(os.fspath(path))
    if not os.path.exists(config.working_directory):
        os.mkdir(config.working_directory)
    return Repo.init(config)


def hash_object(
    filename: Union[str, "os.PathLike[str]"],
    repo: Optional[RepoPath] = None,
    write: bool = False,
) -> ObjectID:
    """Compute the blob id of a file, optionally storing it.

    Args:
      filename: File to hash
      repo: Repository to write to (defaults to the current directory)
      write: Whether to store the blob
    Returns: Hex id of the blob
    """
    with open(filename, "rb") as f:
        data = f.read()
    if not write:
        return objects.hash_object(BLOB, data)
    with open_repo_closing(repo if repo is not None else ".") as r:
        return r.hash_object(data)


def cat_file(
    repo: RepoPath,
    sha: Union[str, bytes],
    mode: str = "p",
    outstream: BinaryIO = default_bytes_out_stream,
) -> None:
    """Print an object.

    Args:
      repo: Path to the repository
      sha: Hex id of the object
      mode: "p" to pretty-print the contents, "t" for the type, "s" for
        the size
      outstream: Stream to write to
    """
    sha = _to_bytes(sha, "ascii")
    with open_repo_closing(repo) as r:
        type_name, payload = r.get_object(sha)
    if mode == "t":
        outstream.write(type_name + b"\n")
    elif mode == "s":
        outstream.write(b"%d\n" % len(payload))
    elif mode == "p":
        if type_name == TREE:
            for entry in parse_tree(payload):
                outstream.write(pretty_format_tree_entry(entry).encode(DEFAULT_ENCODING))
        else:
            outstream.write(payload)
    else:
        raise ValueError(f"unknown cat-file mode {mode!r}")


def ls_tree(
    repo: RepoPath,
    treeish: Union[str, bytes],
    outstream: BinaryIO = default_bytes_out_stream,
    name_only: bool = False,
) -> None:
    """List contents of a tree.

    Args:
      repo: Path to the repository
      treeish: Tree id to list
      outstream: Output stream (defaults to stdout)
      name_only: Only print item name
    """
    with open_repo_closing(repo) as r:
        for entry in r.read_tree(_to_bytes(treeish, "ascii")):
            if name_only:
                outstream.write(entry.name + b"\n")
            else:
                outstream.write(pretty_format_tree_entry(entry).encode(DEFAULT_ENCODING))


def write_tree(repo: RepoPath) -> ObjectID:
    """Write a tree object from the working tree.

    Args:
      repo: Repository for which to write tree
    Returns: tree id for the tree that was written
    """
    with open_repo_closing(repo) as r:
        return r.write_tree()


def commit_tree(
    repo: RepoPath,
    tree: Union[str, bytes],
    message: Union[str, bytes],
    parent: Optional[Union[str, bytes]] = None,
) -> ObjectID:
    """Create a new commit object.

    Args:
      repo: Path to repository
      tree: An existing tree object
      message: Commit message
      parent: Optional parent commit
    """
    with open_repo_closing(repo) as r:
        return r.write_commit(
            _to_bytes(tree, "ascii"),
            _to_bytes(message),
            parent=_to_bytes(parent, "ascii") if parent is not None else None,
        )


def clone(
    source: str,
    target: Union[str, "os.PathLike[str]"],
    config: Optional[RepoConfig] = None,
    pool_manager: Optional["urllib3.PoolManager"] = None,
) -> Repo:
    """Clone a remote repository over smart HTTP.

    Args:
      source: URL of the remote repository
      target: Path of the new working tree
      config: Configuration to use; defaults to one built from the
        environment for target
      pool_manager: urllib3 pool manager to send requests through
    Returns: The new repository
    """
    if config is None:
        config = RepoConfig.from_environ(os.fspath(target))
    return do_clone(source, target, config=config, pool_manager=pool_manager)
