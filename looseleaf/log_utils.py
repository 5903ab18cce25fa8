# log_utils.py -- Logging utilities for looseleaf
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

"""Logging utilities for looseleaf.

looseleaf is mostly used as a library, so the "looseleaf" logger gets a
handler that discards everything until an application configures logging
itself, or calls default_logging_config().
"""

import logging
import os
import sys
from collections.abc import Mapping
from typing import Optional, Union

getLogger = logging.getLogger

TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


class _NullHandler(logging.Handler):
    """No-op logging handler to avoid unexpected logging warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        pass


_NULL_HANDLER = _NullHandler()
_LOOSELEAF_LOGGER = getLogger("looseleaf")
_LOOSELEAF_LOGGER.addHandler(_NULL_HANDLER)


def get_trace_target(
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[Union[str, int]]:
    """Interpret the GIT_TRACE environment variable.

    Returns:
        None if tracing is disabled, 2 for stderr, or an absolute path
    """
    if environ is None:
        environ = os.environ
    value = environ.get("GIT_TRACE", "")
    if value.lower() in ("", "0", "false"):
        return None
    if value.lower() in ("1", "2", "true"):
        return 2
    if os.path.isabs(value):
        return value
    return None


def configure_logging_from_trace(
    environ: Optional[Mapping[str, str]] = None,
) -> bool:
    """Send debug logging wherever GIT_TRACE points.

    Returns True if tracing was configured, False otherwise.
    """
    target = get_trace_target(environ)
    if target is None:
        return False
    remove_null_handler()
    if target == 2:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format=TRACE_FORMAT)
        return True
    assert isinstance(target, str)
    if os.path.isdir(target):
        target = os.path.join(target, f"trace.{os.getpid()}")
    try:
        logging.basicConfig(
            level=logging.DEBUG, filename=target, filemode="a", format=TRACE_FORMAT
        )
    except OSError as e:
        sys.stderr.write(f"Warning: Failed to open GIT_TRACE file {target}: {e}\n")
        return False
    return True


def default_logging_config() -> None:
    """Set up the default looseleaf loggers.

    GIT_TRACE wins if set; otherwise informational messages go to stderr.
    """
    remove_null_handler()
    if not configure_logging_from_trace():
        logging.basicConfig(
            level=logging.INFO,
            stream=sys.stderr,
            format="%(message)s",
        )


def remove_null_handler() -> None:
    """Remove the null handler from the looseleaf logger."""
    _LOOSELEAF_LOGGER.removeHandler(_NULL_HANDLER)
