# utils.py -- Test utilities for looseleaf.
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

"""Utility functions common to looseleaf tests."""

from io import BytesIO
from typing import Optional

from urllib3.response import HTTPResponse

from looseleaf.object_store import MemoryObjectStore, write_commit
from looseleaf.objects import BLOB, ObjectID, hash_object
from looseleaf.pack import create_delta, write_pack_data
from looseleaf.protocol import pkt_line, pkt_seq
from looseleaf.worktree import MemoryDirectory, write_tree

# Plain files are very frequently used in tests, so let the mode be very short.
F = 0o100644

TEST_IDENTITY = b"Test Author <test@example.com>"

UPLOAD_PACK_ADVERTISEMENT = "application/x-git-upload-pack-advertisement"
UPLOAD_PACK_RESULT = "application/x-git-upload-pack-result"


def build_directory(files: dict[bytes, bytes], executable: frozenset = frozenset()) -> MemoryDirectory:
    """Build a MemoryDirectory from a dict of slash-separated paths."""
    root = MemoryDirectory()
    for path, data in files.items():
        *dirs, name = path.split(b"/")
        d = root
        for dirname in dirs:
            d = d.subdirectory(dirname, create=True)
        d.write_file(name, data, executable=path in executable)
    return root


def build_commit_pack(
    files: dict[bytes, bytes],
    delta_pairs: Optional[dict[bytes, bytes]] = None,
) -> tuple[ObjectID, bytes, MemoryObjectStore]:
    """Build a pack holding one commit of the given files.

    Args:
      files: Mapping of slash-separated paths to contents
      delta_pairs: Mapping of target blob contents to base blob contents;
        those targets are stored as ref-deltas against their base
    Returns: Tuple of (commit id, pack data, store holding the objects)
    """
    store = MemoryObjectStore()
    tree = write_tree(store, build_directory(files))
    commit = write_commit(
        store, tree, None, b"Initial commit\n", TEST_IDENTITY,
        commit_time=1700000000, commit_timezone=0,
    )
    delta_pairs = delta_pairs or {}
    for base in delta_pairs.values():
        store.put(BLOB, base)
    entries = []
    deltas = []
    for sha in store:
        type_name, payload = store.get(sha)
        if type_name == BLOB and payload in delta_pairs:
            base = delta_pairs[payload]
            deltas.append((BLOB, create_delta(base, payload), hash_object(BLOB, base)))
        else:
            entries.append((type_name, payload, None))
    # Deltas go last so their bases precede them.
    return commit, write_pack_data(entries + deltas), store


def advertisement(
    refs: dict[bytes, ObjectID],
    capabilities: bytes = b"multi_ack side-band-64k ofs-delta agent=git/2.40.0",
    service_header: bool = True,
) -> bytes:
    """Build a smart HTTP info/refs response body."""
    lines = []
    for i, (name, sha) in enumerate(refs.items()):
        line = sha + b" " + name
        if i == 0:
            line += b"\0" + capabilities
        lines.append(line + b"\n")
    if not lines:
        lines.append(b"0" * 40 + b" capabilities^{}\0" + capabilities + b"\n")
    body = pkt_seq(*lines)
    if service_header:
        body = pkt_seq(b"# service=git-upload-pack\n") + body
    return body


def upload_pack_result(pack: bytes) -> bytes:
    """Build a git-upload-pack response carrying a pack."""
    return pkt_line(b"NAK\n") + pack


class PoolManagerMock:
    """Stand-in for urllib3.PoolManager that serves canned responses.

    Responses are keyed by (method, url) and are tuples of
    (status, content type, body). Requests are recorded in ``requests``.
    """

    def __init__(
        self,
        responses: Optional[dict[tuple[str, str], tuple[int, Optional[str], bytes]]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.headers: dict[str, str] = {}
        self.responses = responses or {}
        self.error = error
        self.requests: list[tuple[str, str, dict[str, str], Optional[bytes]]] = []

    def request(
        self,
        method: str,
        url: str,
        fields: object = None,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None,
        preload_content: bool = True,
        **kwargs: object,
    ) -> HTTPResponse:
        self.requests.append((method, url, dict(headers or {}), body))
        if self.error is not None:
            raise self.error
        try:
            status, content_type, data = self.responses[(method, url)]
        except KeyError:
            status, content_type, data = 404, "text/plain", b"not found"
        response_headers: dict[str, str] = {}
        if content_type is not None:
            response_headers["Content-Type"] = content_type
        return HTTPResponse(
            body=BytesIO(data),
            headers=response_headers,
            request_method=method,
            request_url=url,
            preload_content=preload_content,
            status=status,
        )


def smart_server(
    base_url: str, refs: dict[bytes, ObjectID], pack: bytes
) -> PoolManagerMock:
    """Return a PoolManagerMock that behaves like a smart HTTP git server."""
    base_url = base_url.rstrip("/")
    return PoolManagerMock(
        {
            ("GET", base_url + "/info/refs?service=git-upload-pack"): (
                200,
                UPLOAD_PACK_ADVERTISEMENT,
                advertisement(refs),
            ),
            ("POST", base_url + "/git-upload-pack"): (
                200,
                UPLOAD_PACK_RESULT,
                upload_pack_result(pack),
            ),
        }
    )
