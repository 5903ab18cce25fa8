# __init__.py -- The tests for looseleaf
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

"""Tests for looseleaf."""

__all__ = [
    "SkipTest",
    "TestCase",
    "self_test_suite",
    "skipIf",
    "test_suite",
]

import os
import shutil
import tempfile
import unittest
from unittest import SkipTest, skipIf
from unittest import TestCase as _TestCase


class TestCase(_TestCase):
    """Test case that isolates the environment git looks at."""

    def setUp(self) -> None:
        super().setUp()
        self.overrideEnv("HOME", "/nonexistent")
        for name in ("GIT_DIR", "GIT_AUTHOR_NAME", "GIT_AUTHOR_EMAIL", "GIT_TRACE"):
            self.overrideEnv(name, None)

    def overrideEnv(self, name: str, value: "str | None") -> None:
        def restore(oldvalue: "str | None") -> None:
            if oldvalue is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = oldvalue

        oldvalue = os.environ.get(name)
        if value is not None:
            os.environ[name] = value
        else:
            os.environ.pop(name, None)
        self.addCleanup(restore, oldvalue)

    def mkdtemp(self) -> str:
        """Create a temporary directory that is removed after the test."""
        path = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, path)
        return path


def self_test_suite() -> unittest.TestSuite:
    names = [
        "cli",
        "client",
        "clone",
        "config",
        "file",
        "log_utils",
        "object_store",
        "objects",
        "pack",
        "porcelain",
        "protocol",
        "repository",
        "worktree",
    ]
    module_names = ["tests.test_" + name for name in names]
    loader = unittest.TestLoader()
    return loader.loadTestsFromNames(module_names)


def test_suite() -> unittest.TestSuite:
    return self_test_suite()
