# client.py -- Smart HTTP client for fetching from git servers
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

"""Client side of the git smart HTTP protocol.

Only the read side of ``git-upload-pack`` is implemented: reference
discovery and a single-want negotiation that asks for everything
reachable from one commit.

The HTTP transport is urllib3. A pool manager can be passed in, which is
how the tests talk to a fake server.
"""

__all__ = [
    "HttpGitClient",
    "Urllib3HttpGitClient",
    "default_urllib3_manager",
    "extract_pack_data",
    "read_pkt_refs",
]

from collections.abc import Callable, Iterable
from io import BytesIO
from typing import TYPE_CHECKING, Optional
from urllib.parse import urljoin

from .config import RepoConfig, default_user_agent_string
from .errors import FormatError, NotFound, TransportError
from .log_utils import getLogger
from .objects import ObjectID, valid_hexsha
from .pack import PACK_MAGIC
from .protocol import CAPABILITIES_REF, Protocol, extract_capabilities, pkt_line

if TYPE_CHECKING:
    import urllib3
    from urllib3.response import HTTPResponse

logger = getLogger(__name__)

UPLOAD_PACK_SERVICE = "git-upload-pack"

HEAD_REF = b"HEAD"


def default_urllib3_manager(
    config: Optional[RepoConfig],
    pool_manager_cls: Optional[type] = None,
    timeout: Optional[float] = None,
    cert_reqs: Optional[str] = None,
) -> "urllib3.PoolManager":
    """Return urllib3 connection pool manager.

    Args:
      config: RepoConfig supplying the user agent and timeout
      pool_manager_cls: Pool manager class to use
      timeout: Timeout for HTTP requests in seconds; overrides the config
      cert_reqs: SSL certificate requirements (e.g. "CERT_REQUIRED")
    Returns: pool_manager_cls (defaults to `urllib3.PoolManager`) instance
    """
    user_agent = None
    if config is not None:
        user_agent = config.user_agent
        if timeout is None:
            timeout = config.http_timeout
    if user_agent is None:
        user_agent = default_user_agent_string()

    headers = {"User-agent": user_agent}

    kwargs: dict[str, object] = {
        "cert_reqs": cert_reqs if cert_reqs is not None else "CERT_REQUIRED",
    }
    if timeout is not None:
        kwargs["timeout"] = timeout

    import urllib3

    if pool_manager_cls is None:
        pool_manager_cls = urllib3.PoolManager
    return pool_manager_cls(headers=headers, **kwargs)


def _wrap_urllib3_exceptions(
    func: Callable[..., bytes],
) -> Callable[..., bytes]:
    from urllib3.exceptions import HTTPError

    def wrapper(*args: object, **kwargs: object) -> bytes:
        try:
            return func(*args, **kwargs)
        except HTTPError as error:
            raise TransportError(str(error)) from error

    return wrapper


def read_pkt_refs(
    pkt_seq: Iterable[bytes],
) -> tuple[dict[bytes, ObjectID], set[bytes]]:
    """Read an advertised reference listing.

    Each line is ``<hex id> <name>``; the first line also carries the server
    capabilities after a NUL byte.

    Returns: tuple of (refs, server capabilities)
    Raises:
      TransportError: if the server sent an ERR line
      FormatError: if a line is malformed
    """
    server_capabilities = None
    refs: dict[bytes, ObjectID] = {}
    for pkt in pkt_seq:
        if pkt.startswith(b"ERR "):
            raise TransportError(pkt[4:].rstrip(b"\n").decode("utf-8", "replace"))
        line = pkt.rstrip(b"\n")
        if server_capabilities is None:
            (line, server_capabilities) = extract_capabilities(line)
        try:
            (sha, ref) = line.split(b" ", 1)
        except ValueError as exc:
            raise FormatError(f"invalid ref advertisement line {pkt!r}") from exc
        if not valid_hexsha(sha):
            raise FormatError(f"invalid object id in ref advertisement {sha!r}")
        refs[ref] = sha

    # An empty repository advertises only its capabilities
    refs.pop(CAPABILITIES_REF, None)
    return refs, set(server_capabilities or [])


def extract_pack_data(body: bytes) -> bytes:
    """Find the pack stream in an upload-pack response.

    The server precedes the pack with NAK/ACK pkt-lines; everything from the
    pack signature on is returned.

    Raises:
      TransportError: if the server reported an error instead
      FormatError: if the response holds no pack
    """
    if body.startswith(b"ERR ", 4):
        proto = Protocol(BytesIO(body).read, lambda data: None)
        pkt = proto.read_pkt_line() or b""
        raise TransportError(pkt[4:].rstrip(b"\n").decode("utf-8", "replace"))
    index = body.find(PACK_MAGIC)
    if index == -1:
        raise FormatError("no pack data in upload-pack response")
    return body[index:]


class Urllib3HttpGitClient:
    """Git client that uses urllib3 for HTTP(S) connections."""

    def __init__(
        self,
        base_url: str,
        pool_manager: Optional["urllib3.PoolManager"] = None,
        config: Optional[RepoConfig] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Initialize Urllib3HttpGitClient.

        Args:
          base_url: URL of the remote repository
          pool_manager: urllib3 pool manager to send requests through
          config: RepoConfig supplying the user agent and timeout
          timeout: Timeout for HTTP requests in seconds
        """
        self._base_url = base_url.rstrip("/") + "/"
        if timeout is None and config is not None:
            timeout = config.http_timeout
        self._timeout = timeout

        if pool_manager is None:
            self.pool_manager = default_urllib3_manager(config, timeout=timeout)
        else:
            self.pool_manager = pool_manager

        self.config = config

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._base_url!r})"

    def _http_request(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        data: Optional[bytes] = None,
    ) -> tuple["HTTPResponse", Callable[[int], bytes]]:
        """Perform HTTP request.

        Args:
          url: Request URL.
          headers: Optional custom headers to override defaults.
          data: Request data; a POST is sent when given.
        Returns:
          Tuple (response, read), where response is an urllib3 response
          object with an additional content_type property, and read is a
          consumable read method for the response data.
        Raises:
          TransportError
        """
        import urllib3.exceptions

        req_headers = dict(getattr(self.pool_manager, "headers", {}))
        if headers is not None:
            req_headers.update(headers)
        req_headers["Pragma"] = "no-cache"

        request_kwargs: dict[str, object] = {
            "headers": req_headers,
            "preload_content": False,
        }
        if self._timeout is not None:
            request_kwargs["timeout"] = self._timeout

        logger.debug("%s %s", "GET" if data is None else "POST", url)
        try:
            if data is None:
                resp = self.pool_manager.request("GET", url, **request_kwargs)
            else:
                request_kwargs["body"] = data
                resp = self.pool_manager.request("POST", url, **request_kwargs)
        except urllib3.exceptions.HTTPError as e:
            raise TransportError(str(e)) from e

        if resp.status == 404:
            raise TransportError(f"repository not found at {url}")
        if resp.status != 200:
            raise TransportError(f"unexpected http resp {resp.status} for {url}")

        resp.content_type = resp.headers.get("Content-Type")  # type: ignore[attr-defined]
        return resp, _wrap_urllib3_exceptions(resp.read)

    def _check_content_type(self, resp: "HTTPResponse", expected: str) -> None:
        content_type = resp.content_type  # type: ignore[attr-defined]
        if not content_type or content_type.split(";")[0].strip() != expected:
            raise TransportError(f"Invalid content-type from server: {content_type}")

    def _smart_request(
        self, service: str, url: str, data: bytes
    ) -> tuple["HTTPResponse", Callable[[int], bytes]]:
        """Send a 'smart' HTTP request.

        This is a simple wrapper around _http_request that sets
        a couple of extra headers.
        """
        assert url[-1] == "/"
        url = urljoin(url, service)
        result_content_type = f"application/x-{service}-result"
        headers = {
            "Content-Type": f"application/x-{service}-request",
            "Accept": result_content_type,
            "Content-Length": str(len(data)),
        }
        resp, read = self._http_request(url, headers, data)
        self._check_content_type(resp, result_content_type)
        return resp, read

    def get_refs(self) -> tuple[dict[bytes, ObjectID], set[bytes]]:
        """Discover the references the remote advertises.

        Returns: tuple of (refs, server capabilities)
        """
        service = UPLOAD_PACK_SERVICE
        url = urljoin(self._base_url, f"info/refs?service={service}")
        resp, read = self._http_request(url, {"Accept": "*/*"})
        try:
            self._check_content_type(resp, f"application/x-{service}-advertisement")
            proto = Protocol(read, lambda data: None)
            pkt = proto.read_pkt_line()
            if pkt is not None and pkt.startswith(b"# service="):
                if pkt.rstrip(b"\n") != b"# service=" + service.encode("ascii"):
                    raise FormatError(
                        f"unexpected first line {pkt!r} from smart server"
                    )
                # The announcement is followed by its own flush-pkt
                if proto.read_pkt_line() is not None:
                    raise FormatError("missing flush-pkt after service announcement")
                pkts = list(proto.read_pkt_seq())
            elif pkt is None:
                pkts = []
            else:
                pkts = [pkt]
                pkts.extend(proto.read_pkt_seq())
        finally:
            resp.close()
        refs, capabilities = read_pkt_refs(pkts)
        logger.debug("remote advertised %d refs", len(refs))
        return refs, capabilities

    def get_head(self) -> ObjectID:
        """Return the id the remote's HEAD points at.

        Raises:
          NotFound: if the remote does not advertise HEAD
        """
        refs, _ = self.get_refs()
        try:
            return refs[HEAD_REF]
        except KeyError as exc:
            raise NotFound("remote does not advertise HEAD") from exc

    def fetch_pack(self, want: ObjectID) -> bytes:
        """Ask for everything reachable from one commit.

        Args:
          want: Hex id of the commit to fetch
        Returns: The raw upload-pack response body
        """
        body = pkt_line(b"want " + want + b"\n") + pkt_line(None) + pkt_line(b"done\n")
        resp, read = self._smart_request(UPLOAD_PACK_SERVICE, self._base_url, body)
        try:
            chunks = []
            while True:
                chunk = read(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        finally:
            resp.close()
        data = b"".join(chunks)
        logger.debug("received %d bytes from upload-pack", len(data))
        return data


HttpGitClient = Urllib3HttpGitClient
