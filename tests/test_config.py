# test_config.py -- Tests for repository configuration
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


"""Tests for looseleaf.config."""

import os

from looseleaf.config import (
    DEFAULT_IDENTITY,
    RepoConfig,
    default_user_agent_string,
)

from . import TestCase


class RepoConfigTests(TestCase):
    def test_defaults(self) -> None:
        config = RepoConfig("/srv/work")
        self.assertEqual("/srv/work", config.working_directory)
        self.assertEqual(os.path.join("/srv/work", ".git"), config.store_root)
        self.assertEqual(os.path.join("/srv/work", ".git", "objects"), config.object_dir)
        self.assertEqual(os.path.join("/srv/work", ".git", "refs"), config.refs_dir)
        self.assertEqual(DEFAULT_IDENTITY, config.identity)
        self.assertEqual(default_user_agent_string(), config.user_agent)
        self.assertIsNone(config.http_timeout)

    def test_relative_paths(self) -> None:
        config = RepoConfig("work", store_root="meta")
        self.assertEqual(os.path.abspath("work"), config.working_directory)
        self.assertEqual(os.path.abspath("meta"), config.store_root)

    def test_explicit_store_root(self) -> None:
        config = RepoConfig("/srv/work", store_root="/srv/meta")
        self.assertEqual(os.path.join("/srv/meta", "objects"), config.object_dir)

    def test_frozen(self) -> None:
        config = RepoConfig("/srv/work")
        with self.assertRaises(AttributeError):
            config.identity = b"x <y>"  # type: ignore[misc]

    def test_with_working_directory(self) -> None:
        config = RepoConfig("/srv/work", store_root="/srv/meta", http_timeout=3.0)
        moved = config.with_working_directory("/srv/other")
        self.assertEqual("/srv/other", moved.working_directory)
        self.assertEqual(os.path.join("/srv/other", ".git"), moved.store_root)
        self.assertEqual(3.0, moved.http_timeout)
        self.assertEqual("/srv/work", config.working_directory)


class FromEnvironTests(TestCase):
    def test_empty(self) -> None:
        config = RepoConfig.from_environ("/srv/work", environ={})
        self.assertEqual(RepoConfig("/srv/work"), config)

    def test_default_working_directory(self) -> None:
        config = RepoConfig.from_environ(environ={})
        self.assertEqual(os.getcwd(), config.working_directory)

    def test_git_dir(self) -> None:
        config = RepoConfig.from_environ("/srv/work", environ={"GIT_DIR": "/srv/meta"})
        self.assertEqual("/srv/meta", config.store_root)

    def test_identity(self) -> None:
        config = RepoConfig.from_environ(
            "/srv/work",
            environ={
                "GIT_AUTHOR_NAME": "Jane Doe",
                "GIT_AUTHOR_EMAIL": "jane@example.com",
            },
        )
        self.assertEqual(b"Jane Doe <jane@example.com>", config.identity)

    def test_identity_name_only(self) -> None:
        config = RepoConfig.from_environ(
            "/srv/work", environ={"GIT_AUTHOR_NAME": "Jane Doe"}
        )
        self.assertEqual(b"Jane Doe <looseleaf@localhost>", config.identity)

    def test_identity_email_only(self) -> None:
        config = RepoConfig.from_environ(
            "/srv/work", environ={"GIT_AUTHOR_EMAIL": "<jane@example.com>"}
        )
        self.assertEqual(b"looseleaf <jane@example.com>", config.identity)

    def test_os_environ(self) -> None:
        self.overrideEnv("GIT_DIR", "/srv/meta")
        self.assertEqual("/srv/meta", RepoConfig.from_environ("/srv/work").store_root)


class UserAgentTests(TestCase):
    def test_default(self) -> None:
        agent = default_user_agent_string()
        self.assertTrue(agent.startswith("git/looseleaf-"))
        self.assertEqual("git/looseleaf-0.1.0", agent)
