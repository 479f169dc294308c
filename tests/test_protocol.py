"""Wire protocol tests"""

import pytest

from termtile.pty.protocol import CloseCode, Resize, TerminalInput, decode_frame, encode_resize


class TestDecodeFrame:
    """decode_frame"""

    def test_resize(self):
        assert decode_frame('{"type":"resize","cols":120,"rows":40}') == Resize(120, 40)

    def test_resize_from_bytes_with_whitespace(self):
        assert decode_frame(b'{ "type": "resize", "rows": 10, "cols": 20 }') == Resize(20, 10)

    def test_plain_text(self):
        assert decode_frame("echo hi\r") == TerminalInput(b"echo hi\r")

    def test_binary_passthrough(self):
        assert decode_frame(b"\x1b[A") == TerminalInput(b"\x1b[A")

    @pytest.mark.parametrize(
        "frame",
        [
            "{not json",
            "{",
            '{"type":"paste","data":"x"}',
            '{"type":"resize","cols":120}',
            '{"type":"resize","cols":0,"rows":40}',
            '{"type":"resize","cols":-1,"rows":40}',
            '{"type":"resize","cols":"120","rows":40}',
            '{"type":"resize","cols":80.5,"rows":24}',
            '{"type":"resize","cols":70000,"rows":40}',
            '{"type":"resize","cols":80,"rows":65536}',
        ],
    )
    def test_malformed_control_is_input(self, frame):
        """Anything that is not a valid resize goes to the process verbatim"""
        assert decode_frame(frame) == TerminalInput(frame.encode())

    def test_invalid_utf8_brace_is_input(self):
        assert decode_frame(b"{\xff\xfe") == TerminalInput(b"{\xff\xfe")

    def test_brace_not_first(self):
        assert decode_frame(' {"type":"resize","cols":1,"rows":1}') == TerminalInput(
            b' {"type":"resize","cols":1,"rows":1}'
        )

    def test_largest_extent(self):
        assert decode_frame('{"type":"resize","cols":65535,"rows":65535}') == Resize(65535, 65535)

    def test_encode_resize(self):
        assert decode_frame(encode_resize(100, 30)) == Resize(100, 30)


class TestCloseCode:
    """Close codes"""

    def test_values(self):
        assert CloseCode.SESSION_ENDED == 1000
        assert CloseCode.SPAWN_FAILED == 1011
        assert CloseCode.MISSING_SESSION == 4000
        assert CloseCode.UNAUTHORIZED == 4001

    def test_reasons(self):
        assert CloseCode.SESSION_ENDED.reason == "Process exited"
        assert CloseCode.MISSING_SESSION.reason == "Missing session ID"
