# test_protocol.py -- Tests for the git protocol
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

"""Tests for pkt-line framing."""

from io import BytesIO

from looseleaf.errors import FormatError, TransportError
from looseleaf.protocol import (
    Protocol,
    extract_capabilities,
    pkt_line,
    pkt_seq,
)

from . import TestCase


class PktLineTests(TestCase):
    def test_pkt_line(self) -> None:
        self.assertEqual(b"0009done\n", pkt_line(b"done\n"))

    def test_want_line(self) -> None:
        want = b"want " + b"a" * 40 + b"\n"
        self.assertEqual(b"0032" + want, pkt_line(want))

    def test_flush(self) -> None:
        self.assertEqual(b"0000", pkt_line(None))

    def test_empty(self) -> None:
        self.assertEqual(b"0004", pkt_line(b""))

    def test_pkt_seq(self) -> None:
        self.assertEqual(b"0007foo0007bar0000", pkt_seq(b"foo", b"bar"))


class ProtocolTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.rout = BytesIO()
        self.rin = BytesIO()
        self.proto = Protocol(self.rin.read, self.rout.write)

    def test_write_pkt_line_none(self) -> None:
        self.proto.write_pkt_line(None)
        self.assertEqual(self.rout.getvalue(), b"0000")

    def test_write_pkt_line(self) -> None:
        self.proto.write_pkt_line(b"bla")
        self.assertEqual(self.rout.getvalue(), b"0007bla")

    def test_read_pkt_line(self) -> None:
        self.rin.write(b"0008cmd ")
        self.rin.seek(0)
        self.assertEqual(b"cmd ", self.proto.read_pkt_line())

    def test_read_pkt_line_none(self) -> None:
        self.rin.write(b"0000")
        self.rin.seek(0)
        self.assertEqual(None, self.proto.read_pkt_line())

    def test_read_pkt_seq(self) -> None:
        self.rin.write(b"0008cmd 0005l0000rest")
        self.rin.seek(0)
        self.assertEqual([b"cmd ", b"l"], list(self.proto.read_pkt_seq()))
        self.assertEqual(b"rest", self.rin.read())

    def test_read_pkt_line_wrong_size(self) -> None:
        self.rin.write(b"0100too short")
        self.rin.seek(0)
        self.assertRaises(FormatError, self.proto.read_pkt_line)

    def test_read_pkt_line_bad_length(self) -> None:
        self.rin.write(b"zzzzdata")
        self.rin.seek(0)
        self.assertRaises(FormatError, self.proto.read_pkt_line)

    def test_read_pkt_line_length_too_small(self) -> None:
        self.rin.write(b"0002")
        self.rin.seek(0)
        self.assertRaises(FormatError, self.proto.read_pkt_line)

    def test_read_pkt_line_truncated_length(self) -> None:
        self.rin.write(b"00")
        self.rin.seek(0)
        self.assertRaises(FormatError, self.proto.read_pkt_line)

    def test_read_pkt_line_hangup(self) -> None:
        self.assertRaises(TransportError, self.proto.read_pkt_line)


class CapabilitiesTestCase(TestCase):
    def test_plain(self) -> None:
        self.assertEqual((b"bla", []), extract_capabilities(b"bla"))

    def test_caps(self) -> None:
        self.assertEqual((b"bla", [b"la"]), extract_capabilities(b"bla\0la"))
        self.assertEqual((b"bla", [b"la"]), extract_capabilities(b"bla\0la\n"))
        self.assertEqual((b"bla", [b"la", b"la"]), extract_capabilities(b"bla\0la la"))

    def test_ref_line(self) -> None:
        sha = b"a" * 40
        self.assertEqual(
            (sha + b" HEAD", [b"multi_ack", b"side-band-64k"]),
            extract_capabilities(sha + b" HEAD\0multi_ack side-band-64k\n"),
        )
