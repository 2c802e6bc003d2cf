"""
Tests for Content-Length framing (encode, decode_all, FrameDecoder).
"""

import json

import pytest

from stdio_bridge.protocol.framing import FrameDecoder, decode_all, encode, parse_content_length
from stdio_bridge.protocol.messages import DecodedMessage, DecodeError


def values(outcomes):
    return [o.value for o in outcomes if isinstance(o, DecodedMessage)]


class TestEncode:
    """Tests for encode()."""

    def test_exact_wire_format(self):
        assert encode({"a": 1}) == b'Content-Length: 7\r\n\r\n{"a":1}'

    def test_length_counts_utf8_bytes(self):
        frame = encode({"text": "héllo ✓"})
        header, body = frame.split(b"\r\n\r\n", 1)
        assert header == f"Content-Length: {len(body)}".encode()
        assert len(body) > len(body.decode("utf-8"))

    def test_no_trailing_separator(self):
        assert encode([1, 2]).endswith(b"[1,2]")

    def test_rejects_nan(self):
        with pytest.raises(ValueError):
            encode({"x": float("nan")})

    def test_rejects_unserializable(self):
        with pytest.raises(TypeError):
            encode({"x": object()})


class TestDecodeAll:
    """Tests for the stateless decode_all()."""

    @pytest.mark.parametrize(
        "value",
        [
            {"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {}},
            {"jsonrpc": "2.0", "id": "abc", "result": {"content": [{"type": "text", "text": "ünïcødé"}]}},
            [1, "two", None, True],
            "plain string with \r\n\r\n inside",
            0,
            None,
        ],
    )
    def test_round_trip(self, value):
        decoded, remaining = decode_all(encode(value))
        assert decoded == [value]
        assert remaining == b""

    def test_multiple_frames_in_one_buffer(self):
        a = {"id": 1, "result": "a"}
        b = {"id": 2, "result": "b"}
        decoded, remaining = decode_all(encode(a) + encode(b))
        assert decoded == [a, b]
        assert remaining == b""

    def test_incomplete_frame_is_retained(self):
        frame = encode({"id": 1})
        decoded, remaining = decode_all(frame[:-1])
        assert decoded == []
        assert remaining == frame[:-1]

    def test_complete_then_partial(self):
        first = encode({"id": 1})
        second = encode({"id": 2})
        decoded, remaining = decode_all(first + second[:10])
        assert decoded == [{"id": 1}]
        assert remaining == second[:10]

    def test_header_without_separator_is_retained(self):
        decoded, remaining = decode_all(b"Content-Length: 12\r\n")
        assert decoded == []
        assert remaining == b"Content-Length: 12\r\n"

    def test_malformed_header_is_skipped(self):
        valid = {"id": 9, "result": True}
        buffer = b"Garbage: yes\r\nNothing: here\r\n\r\n" + encode(valid)
        decoded, remaining = decode_all(buffer)
        assert decoded == [valid]
        assert remaining == b""

    def test_bad_json_does_not_stop_later_frames(self):
        valid = {"id": 2}
        buffer = b"Content-Length: 4\r\n\r\n{bad" + encode(valid)
        decoded, remaining = decode_all(buffer)
        assert decoded == [valid]
        assert remaining == b""

    def test_header_name_is_case_insensitive(self):
        decoded, _ = decode_all(b"content-LENGTH: 2\r\n\r\n{}")
        assert decoded == [{}]

    def test_extra_headers_are_ignored(self):
        body = b'{"id":1}'
        buffer = b"Content-Type: application/vscode-jsonrpc\r\nContent-Length: 8\r\n\r\n" + body
        decoded, _ = decode_all(buffer)
        assert decoded == [{"id": 1}]


class TestFrameDecoder:
    """Tests for incremental decoding."""

    def test_split_at_every_boundary(self):
        value = {"jsonrpc": "2.0", "id": "split", "result": {"text": "données"}}
        frame = encode(value)

        for cut in range(1, len(frame)):
            decoder = FrameDecoder()
            assert decoder.feed(frame[:cut]) == []
            outcomes = decoder.feed(frame[cut:])
            assert values(outcomes) == [value], f"cut at {cut}"
            assert decoder.pending_bytes == 0

    def test_byte_by_byte(self):
        value = {"id": 3, "result": [1, 2, 3]}
        frame = encode(value)
        decoder = FrameDecoder()

        seen = []
        for i in range(len(frame)):
            outcomes = decoder.feed(frame[i:i + 1])
            if i < len(frame) - 1:
                assert outcomes == []
            seen.extend(values(outcomes))

        assert seen == [value]

    def test_three_chunks_across_two_frames(self):
        a, b = {"id": "a"}, {"id": "b"}
        stream = encode(a) + encode(b)
        decoder = FrameDecoder()

        first = decoder.feed(stream[:5])
        second = decoder.feed(stream[5:len(encode(a)) + 3])
        third = decoder.feed(stream[len(encode(a)) + 3:])

        assert values(first) == []
        assert values(second) == [a]
        assert values(third) == [b]

    def test_reports_decode_errors_in_order(self):
        decoder = FrameDecoder()
        outcomes = decoder.feed(
            b"X-Foo: 1\r\n\r\n" + b"Content-Length: 3\r\n\r\n{{{" + encode({"ok": 1})
        )

        assert len(outcomes) == 3
        assert isinstance(outcomes[0], DecodeError)
        assert "Content-Length" in outcomes[0].reason
        assert isinstance(outcomes[1], DecodeError)
        assert outcomes[1].raw == b"{{{"
        assert outcomes[2] == DecodedMessage({"ok": 1})

    def test_deeply_nested_payload_is_a_decode_error(self):
        decoder = FrameDecoder()
        nested = b"[" * 200000 + b"]" * 200000
        chunk = f"Content-Length: {len(nested)}\r\n\r\n".encode() + nested + encode({"id": 1})

        outcomes = decoder.feed(chunk)

        assert len(outcomes) == 2
        assert isinstance(outcomes[0], DecodeError)
        assert "nesting" in outcomes[0].reason
        assert outcomes[1] == DecodedMessage({"id": 1})
        assert decoder.pending_bytes == 0

    def test_nan_constants_are_accepted(self):
        payload = b'{"id":1,"result":NaN}'
        outcomes = FrameDecoder().feed(f"Content-Length: {len(payload)}\r\n\r\n".encode() + payload)

        assert len(outcomes) == 1
        assert outcomes[0].value["result"] != outcomes[0].value["result"]

    def test_oversized_frame_is_dropped_without_buffering(self):
        decoder = FrameDecoder(max_message_size=10)
        payload = json.dumps({"data": "x" * 50}).encode()
        oversized = f"Content-Length: {len(payload)}\r\n\r\n".encode() + payload

        outcomes = decoder.feed(oversized[:30])
        assert len(outcomes) == 1
        assert isinstance(outcomes[0], DecodeError)
        assert "too large" in outcomes[0].reason
        assert decoder.pending_bytes == 0

        outcomes = decoder.feed(oversized[30:] + encode({"n": 1}))
        assert values(outcomes) == [{"n": 1}]
        assert decoder.pending_bytes == 0

    def test_oversized_frame_complete_in_one_chunk(self):
        decoder = FrameDecoder(max_message_size=4)
        outcomes = decoder.feed(b'Content-Length: 9\r\n\r\n{"a":123}' + encode(1))
        assert isinstance(outcomes[0], DecodeError)
        assert values(outcomes) == [1]

    def test_runaway_header_is_dropped(self):
        decoder = FrameDecoder(max_header_size=64)
        outcomes = decoder.feed(b"z" * 200)

        assert len(outcomes) == 1
        assert isinstance(outcomes[0], DecodeError)
        assert decoder.pending_bytes == 3

        outcomes = decoder.feed(encode({"after": True}))
        assert values(outcomes) == [{"after": True}]

    def test_buffer_property_is_a_copy(self):
        decoder = FrameDecoder()
        decoder.feed(b"Content-")
        snapshot = decoder.buffer
        decoder.feed(b"Length: 2\r\n\r\n{}")
        assert snapshot == b"Content-"
        assert decoder.pending_bytes == 0


class TestParseContentLength:
    def test_found(self):
        assert parse_content_length(b"Content-Length:   42") == 42

    def test_missing(self):
        assert parse_content_length(b"Content-Type: text/plain") is None

    def test_negative_is_not_a_length(self):
        assert parse_content_length(b"Content-Length: -5") is None
