# test_object_store.py -- tests for object_store.py
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

"""Tests for the object store."""

import os
import stat
import threading
import zlib

from looseleaf.errors import CorruptObject, FormatError, NotFound, ObjectMissing
from looseleaf.file import FileLocked
from looseleaf.object_store import (
    DiskObjectStore,
    MemoryObjectStore,
    hex_to_filename,
    read_tree,
    write_commit,
)
from looseleaf.objects import (
    BLOB,
    COMMIT,
    FILE_MODE,
    TREE,
    Commit,
    TreeEntry,
    serialize_tree,
)

from . import TestCase

hello_sha = b"ce013625030ba8dba906f756967f9e9ca394464a"


class ObjectStoreTests:
    """Tests shared by all object store implementations."""

    store: "DiskObjectStore | MemoryObjectStore"

    def test_put_get(self) -> None:
        sha = self.store.put(BLOB, b"hello\n")
        self.assertEqual(hello_sha, sha)
        self.assertEqual((BLOB, b"hello\n"), self.store.get(sha))

    def test_put_idempotent(self) -> None:
        self.assertEqual(self.store.put(BLOB, b"data"), self.store.put(BLOB, b"data"))
        self.assertEqual(1, len(list(self.store)))

    def test_exists(self) -> None:
        self.assertFalse(self.store.exists(hello_sha))
        self.store.put(BLOB, b"hello\n")
        self.assertTrue(self.store.exists(hello_sha))
        self.assertIn(hello_sha, self.store)

    def test_get_missing(self) -> None:
        with self.assertRaises(ObjectMissing) as cm:
            self.store.get(hello_sha)
        self.assertIsInstance(cm.exception, NotFound)
        self.assertEqual(hello_sha, cm.exception.sha)

    def test_iter(self) -> None:
        shas = {self.store.put(BLOB, b"a"), self.store.put(BLOB, b"b")}
        self.assertEqual(sorted(shas), list(self.store))

    def test_read_tree(self) -> None:
        blob = self.store.put(BLOB, b"hello\n")
        entries = [TreeEntry(FILE_MODE, b"hello.txt", blob)]
        tree = self.store.put(TREE, serialize_tree(entries))
        self.assertEqual(entries, read_tree(self.store, tree))

    def test_read_tree_not_a_tree(self) -> None:
        blob = self.store.put(BLOB, b"hello\n")
        self.assertRaises(FormatError, read_tree, self.store, blob)

    def test_read_tree_missing(self) -> None:
        self.assertRaises(NotFound, read_tree, self.store, hello_sha)

    def test_write_commit(self) -> None:
        tree = self.store.put(TREE, b"")
        sha = write_commit(
            self.store,
            tree,
            None,
            b"first",
            b"Jane <jane@example.com>",
            commit_time=1700000000,
            commit_timezone=3600,
        )
        type_name, payload = self.store.get(sha)
        self.assertEqual(COMMIT, type_name)
        commit = Commit.from_payload(payload)
        self.assertEqual(tree, commit.tree)
        self.assertIsNone(commit.parent)
        self.assertEqual(b"Jane <jane@example.com>", commit.author)
        self.assertEqual(b"Jane <jane@example.com>", commit.committer)
        self.assertEqual(1700000000, commit.commit_time)
        self.assertEqual(3600, commit.commit_timezone)
        self.assertEqual(b"first\n", commit.message)
        self.assertIn(b" 1700000000 +0100\n", payload)

    def test_write_commit_with_parent(self) -> None:
        tree = self.store.put(TREE, b"")
        parent = write_commit(self.store, tree, None, b"one\n", b"A <a@b>")
        child = write_commit(self.store, tree, parent, b"two\n", b"A <a@b>")
        _, payload = self.store.get(child)
        self.assertEqual(parent, Commit.from_payload(payload).parent)

    def test_write_commit_invalid_tree(self) -> None:
        with self.assertRaises(ObjectMissing):
            write_commit(self.store, b"not-a-tree", None, b"m", b"A <a@b>")
        self.assertEqual([], list(self.store))

    def test_write_commit_missing_tree(self) -> None:
        with self.assertRaises(NotFound):
            write_commit(self.store, hello_sha, None, b"m", b"A <a@b>")
        self.assertEqual([], list(self.store))

    def test_write_commit_tree_is_blob(self) -> None:
        blob = self.store.put(BLOB, b"hello\n")
        self.assertRaises(
            FormatError, write_commit, self.store, blob, None, b"m", b"A <a@b>"
        )
        self.assertEqual([blob], list(self.store))

    def test_write_commit_missing_parent(self) -> None:
        tree = self.store.put(TREE, b"")
        self.assertRaises(
            ObjectMissing, write_commit, self.store, tree, hello_sha, b"m", b"A <a@b>"
        )
        self.assertRaises(
            ObjectMissing, write_commit, self.store, tree, b"HEAD", b"m", b"A <a@b>"
        )
        self.assertEqual([tree], list(self.store))

    def test_write_commit_parent_is_tree(self) -> None:
        tree = self.store.put(TREE, b"")
        self.assertRaises(
            FormatError, write_commit, self.store, tree, tree, b"m", b"A <a@b>"
        )


class MemoryObjectStoreTests(ObjectStoreTests, TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.store = MemoryObjectStore()


class DiskObjectStoreTests(ObjectStoreTests, TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.store_dir = os.path.join(self.mkdtemp(), "objects")
        self.store = DiskObjectStore.init(self.store_dir)

    def test_layout(self) -> None:
        sha = self.store.put(BLOB, b"hello\n")
        path = os.path.join(self.store_dir, "ce", "013625030ba8dba906f756967f9e9ca394464a")
        self.assertEqual(path, hex_to_filename(self.store_dir, sha))
        with open(path, "rb") as f:
            self.assertEqual(b"blob 6\0hello\n", zlib.decompress(f.read()))

    def test_files_read_only(self) -> None:
        self.store.put(BLOB, b"hello\n")
        mode = os.stat(hex_to_filename(self.store_dir, hello_sha)).st_mode
        self.assertEqual(0, stat.S_IMODE(mode) & 0o222)

    def test_no_lock_files_left(self) -> None:
        self.store.put(BLOB, b"hello\n")
        self.assertEqual(
            ["013625030ba8dba906f756967f9e9ca394464a"],
            os.listdir(os.path.join(self.store_dir, "ce")),
        )

    def test_put_stale_lock(self) -> None:
        path = hex_to_filename(self.store_dir, hello_sha)
        os.mkdir(os.path.dirname(path))
        with open(path + ".lock", "wb"):
            pass
        self.store.lock_timeout = 0
        self.assertRaises(FileLocked, self.store.put, BLOB, b"hello\n")
        self.assertFalse(self.store.exists(hello_sha))
        self.assertRaises(ObjectMissing, self.store.get, hello_sha)

    def test_put_waits_for_concurrent_writer(self) -> None:
        path = hex_to_filename(self.store_dir, hello_sha)
        os.mkdir(os.path.dirname(path))
        with open(path + ".lock", "wb") as f:
            f.write(zlib.compress(b"blob 6\0hello\n"))
        writer = threading.Timer(0.05, os.replace, (path + ".lock", path))
        writer.start()
        self.addCleanup(writer.join)
        self.assertEqual(hello_sha, self.store.put(BLOB, b"hello\n"))
        self.assertEqual((BLOB, b"hello\n"), self.store.get(hello_sha))

    def test_put_existing_keeps_file(self) -> None:
        self.store.put(BLOB, b"hello\n")
        path = hex_to_filename(self.store_dir, hello_sha)
        before = os.stat(path)
        self.store.put(BLOB, b"hello\n")
        self.assertEqual(before.st_ino, os.stat(path).st_ino)

    def test_get_invalid_id(self) -> None:
        self.assertRaises(ObjectMissing, self.store.get, b"../../etc/passwd")

    def test_get_corrupt(self) -> None:
        path = hex_to_filename(self.store_dir, hello_sha)
        os.mkdir(os.path.dirname(path))
        with open(path, "wb") as f:
            f.write(b"garbage")
        self.assertRaises(CorruptObject, self.store.get, hello_sha)

    def test_init_existing(self) -> None:
        self.store.put(BLOB, b"hello\n")
        store = DiskObjectStore.init(self.store_dir)
        self.assertTrue(store.exists(hello_sha))

    def test_iter_ignores_other_files(self) -> None:
        self.store.put(BLOB, b"hello\n")
        os.mkdir(os.path.join(self.store_dir, "pack"))
        with open(os.path.join(self.store_dir, "ce", "junk.lock"), "wb"):
            pass
        self.assertEqual([hello_sha], list(self.store))
