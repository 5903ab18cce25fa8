#!/usr/bin/python3 -u
#
# cli.py -- Command-line interface for looseleaf
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

"""Simple command-line interface to looseleaf.

The commands operate on the repository in the current directory (or the
one GIT_DIR names); ``init`` and ``clone`` take an explicit path.
"""

import argparse
import signal
import sys
import types
from collections.abc import Sequence
from typing import BinaryIO, NoReturn, Optional

from . import porcelain
from .config import RepoConfig
from .errors import LooseleafError
from .file import FileLocked
from .log_utils import default_logging_config, getLogger
from .repo import Repo

logger = getLogger(__name__)


def signal_int(signal: int, frame: Optional[types.FrameType]) -> None:
    """Handle SIGINT signal by exiting.

    Args:
        signal: Signal number
        frame: Current stack frame
    """
    sys.exit(1)


class UsageError(Exception):
    """Command line arguments could not be parsed."""


class ArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports errors instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(f"{self.prog}: {message}")


class Command:
    """A looseleaf subcommand."""

    name = ""

    def __init__(
        self,
        outstream: Optional[BinaryIO] = None,
        config: Optional[RepoConfig] = None,
    ) -> None:
        self.outstream = outstream if outstream is not None else sys.stdout.buffer
        self._config = config

    @property
    def config(self) -> RepoConfig:
        """Configuration for the repository in the current directory."""
        if self._config is None:
            self._config = RepoConfig.from_environ()
        return self._config

    def _parser(self) -> ArgumentParser:
        return ArgumentParser(prog=f"looseleaf {self.name}")

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_init(Command):
    """Create an empty Git repository or reinitialize an existing one."""

    name = "init"

    def run(self, args: Sequence[str]) -> None:
        parser = self._parser()
        parser.add_argument("path", nargs="?", help="Repository path")
        parsed_args = parser.parse_args(args)
        if parsed_args.path is None:
            config = self.config
        else:
            config = self.config.with_working_directory(parsed_args.path)
        porcelain.init(config.working_directory, config=config)
        self.outstream.write(b"Initialized git directory\n")


class cmd_hash_object(Command):
    """Compute the object id of a file and optionally store it."""

    name = "hash-object"

    def run(self, args: Sequence[str]) -> None:
        parser = self._parser()
        parser.add_argument(
            "-w", dest="write", action="store_true", help="Write the object"
        )
        parser.add_argument("file", help="File to hash")
        parsed_args = parser.parse_args(args)
        if parsed_args.write:
            sha = porcelain.hash_object(
                parsed_args.file, repo=Repo(self.config), write=True
            )
        else:
            sha = porcelain.hash_object(parsed_args.file)
        self.outstream.write(sha + b"\n")


class cmd_cat_file(Command):
    """Provide contents, type or size of a repository object."""

    name = "cat-file"

    def run(self, args: Sequence[str]) -> None:
        parser = self._parser()
        group = parser.add_mutually_exclusive_group(required=True)
        group.add_argument(
            "-p", dest="mode", action="store_const", const="p",
            help="Pretty-print the object contents",
        )
        group.add_argument(
            "-t", dest="mode", action="store_const", const="t",
            help="Show the object type",
        )
        group.add_argument(
            "-s", dest="mode", action="store_const", const="s",
            help="Show the object size",
        )
        parser.add_argument("object", help="Object id")
        parsed_args = parser.parse_args(args)
        with Repo(self.config) as repo:
            porcelain.cat_file(
                repo, parsed_args.object, mode=parsed_args.mode, outstream=self.outstream
            )


class cmd_ls_tree(Command):
    """List the contents of a tree object."""

    name = "ls-tree"

    def run(self, args: Sequence[str]) -> None:
        parser = self._parser()
        parser.add_argument(
            "--name-only", action="store_true", help="Only display name."
        )
        parser.add_argument("tree", help="Tree id to list")
        parsed_args = parser.parse_args(args)
        with Repo(self.config) as repo:
            porcelain.ls_tree(
                repo,
                parsed_args.tree,
                outstream=self.outstream,
                name_only=parsed_args.name_only,
            )


class cmd_write_tree(Command):
    """Create a tree object from the working directory."""

    name = "write-tree"

    def run(self, args: Sequence[str]) -> None:
        parser = self._parser()
        parser.parse_args(args)
        sha = porcelain.write_tree(Repo(self.config))
        self.outstream.write(sha + b"\n")


class cmd_commit_tree(Command):
    """Create a new commit object from a tree."""

    name = "commit-tree"

    def run(self, args: Sequence[str]) -> None:
        parser = self._parser()
        parser.add_argument("--message", "-m", required=True, help="Commit message")
        parser.add_argument("-p", dest="parent", help="Parent commit")
        parser.add_argument("tree", help="Tree SHA to commit")
        parsed_args = parser.parse_args(args)
        sha = porcelain.commit_tree(
            Repo(self.config),
            parsed_args.tree,
            parsed_args.message,
            parent=parsed_args.parent,
        )
        self.outstream.write(sha + b"\n")


class cmd_clone(Command):
    """Clone a repository into a new directory."""

    name = "clone"

    def run(self, args: Sequence[str]) -> None:
        parser = self._parser()
        parser.add_argument("source", help="Repository to clone (URL)")
        parser.add_argument("target", help="Target directory")
        parsed_args = parser.parse_args(args)
        config = self.config.with_working_directory(parsed_args.target)
        porcelain.clone(parsed_args.source, config.working_directory, config=config)


commands = {
    "cat-file": cmd_cat_file,
    "clone": cmd_clone,
    "commit-tree": cmd_commit_tree,
    "hash-object": cmd_hash_object,
    "init": cmd_init,
    "ls-tree": cmd_ls_tree,
    "write-tree": cmd_write_tree,
}


def main(
    argv: Optional[Sequence[str]] = None,
    outstream: Optional[BinaryIO] = None,
    errstream: Optional[BinaryIO] = None,
    config: Optional[RepoConfig] = None,
) -> int:
    """Main entry point for the looseleaf CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])
        outstream: Stream for command output (defaults to stdout)
        errstream: Stream for error messages (defaults to stderr)
        config: Configuration to run with (defaults to the environment)
    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]
    if errstream is None:
        errstream = sys.stderr.buffer

    def report(message: str) -> None:
        errstream.write(message.encode("utf-8", "replace") + b"\n")
        errstream.flush()

    if not argv:
        report("usage: looseleaf <command> [<args>...]")
        return 1

    default_logging_config()

    cmd = argv[0]
    try:
        cmd_kls = commands[cmd]
    except KeyError:
        report(f"Unknown command {cmd}")
        return 1

    try:
        ret = cmd_kls(outstream=outstream, config=config).run(argv[1:])
    except UsageError as e:
        report(str(e))
        return 1
    except (LooseleafError, FileLocked, OSError) as e:
        logger.debug("%s failed", cmd, exc_info=True)
        report(f"fatal: {e}")
        return 1
    return ret or 0


def _main() -> None:
    signal.signal(signal.SIGINT, signal_int)

    sys.exit(main())


if __name__ == "__main__":
    _main()
