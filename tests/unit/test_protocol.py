"""Unit tests for mcpserve.rpc.protocol (JSON-RPC 2.0 codec)."""

import json

import pytest

from mcpserve.core.errors import InvalidRequestError, ParseError
from mcpserve.rpc.protocol import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    decode,
    encode,
    make_error_response,
    make_success_response,
    split_frames,
)
from mcpserve.rpc.types import Request, Response


class TestSplitFrames:
    """Tests for split_frames()."""

    def test_splits_on_newlines(self):
        assert split_frames(b'{"a":1}\n{"b":2}') == [b'{"a":1}', b'{"b":2}']

    def test_strips_carriage_returns(self):
        assert split_frames(b'{"a":1}\r\n{"b":2}\r\n') == [b'{"a":1}', b'{"b":2}']

    def test_drops_blank_lines(self):
        """Empty and whitespace-only lines are not frames."""
        assert split_frames(b'\n\n{"a":1}\n   \n\n') == [b'{"a":1}']

    def test_empty_chunk(self):
        assert split_frames(b"") == []


class TestDecode:
    """Tests for decode()."""

    def test_decodes_request(self):
        message = decode(b'{"jsonrpc":"2.0","id":1,"method":"tools/list","params":{}}')
        assert message == Request(jsonrpc="2.0", method="tools/list", params={}, id=1)

    def test_accepts_str_frames(self):
        message = decode('{"jsonrpc":"2.0","id":"abc","method":"initialize"}')
        assert isinstance(message, Request)
        assert message.id == "abc"
        assert message.params is None

    def test_notification_has_no_id(self):
        message = decode(b'{"jsonrpc":"2.0","method":"notifications/initialized"}')
        assert isinstance(message, Request)
        assert message.is_notification

    def test_decodes_response_with_result(self):
        message = decode(b'{"jsonrpc":"2.0","id":5,"result":{"ok":true}}')
        assert message == Response(jsonrpc="2.0", id=5, result={"ok": True})

    def test_decodes_response_with_error(self):
        message = decode(b'{"jsonrpc":"2.0","id":5,"error":{"code":-1,"message":"x"}}')
        assert isinstance(message, Response)
        assert message.error == {"code": -1, "message": "x"}

    def test_invalid_json_raises_parse_error(self):
        with pytest.raises(ParseError) as exc_info:
            decode(b"{not json")
        assert exc_info.value.code == PARSE_ERROR
        assert exc_info.value.request_id is None

    def test_invalid_utf8_raises_parse_error(self):
        with pytest.raises(ParseError):
            decode(b'{"jsonrpc":"2.0","method":"\xff"}')

    def test_non_object_raises_invalid_request(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            decode(b"[1, 2, 3]")
        assert exc_info.value.code == INVALID_REQUEST

    def test_wrong_version_keeps_id(self):
        """The id is recovered so the error response can echo it."""
        with pytest.raises(InvalidRequestError) as exc_info:
            decode(b'{"jsonrpc":"1.0","id":7,"method":"tools/list"}')
        assert exc_info.value.request_id == 7

    def test_missing_version_rejected(self):
        with pytest.raises(InvalidRequestError):
            decode(b'{"id":1,"method":"tools/list"}')

    def test_boolean_id_rejected(self):
        with pytest.raises(InvalidRequestError):
            decode(b'{"jsonrpc":"2.0","id":true,"method":"tools/list"}')

    def test_non_string_method_rejected(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            decode(b'{"jsonrpc":"2.0","id":2,"method":42}')
        assert exc_info.value.request_id == 2

    def test_scalar_params_rejected(self):
        with pytest.raises(InvalidRequestError):
            decode(b'{"jsonrpc":"2.0","id":1,"method":"tools/list","params":"x"}')

    def test_array_params_accepted(self):
        message = decode(b'{"jsonrpc":"2.0","id":1,"method":"m","params":[1,2]}')
        assert isinstance(message, Request)
        assert message.params == [1, 2]

    def test_response_with_result_and_error_rejected(self):
        with pytest.raises(InvalidRequestError):
            decode(b'{"jsonrpc":"2.0","id":1,"result":1,"error":{"code":1,"message":"m"}}')

    def test_envelope_without_method_or_result_rejected(self):
        with pytest.raises(InvalidRequestError):
            decode(b'{"jsonrpc":"2.0","id":1}')


class TestEncode:
    """Tests for encode()."""

    def test_compact_single_line(self):
        data = encode(make_success_response(1, {"text": "line1\nline2"}))
        assert b"\n" not in data
        assert b": " not in data
        assert json.loads(data) == {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {"text": "line1\nline2"},
        }

    def test_non_ascii_kept_as_utf8(self):
        data = encode(make_success_response(1, "héllo"))
        assert "héllo".encode() in data

    def test_request_omits_missing_params_and_id(self):
        data = json.loads(encode(Request(jsonrpc="2.0", method="notifications/ping")))
        assert data == {"jsonrpc": "2.0", "method": "notifications/ping"}

    def test_error_response_has_no_result(self):
        data = json.loads(encode(make_error_response(3, METHOD_NOT_FOUND)))
        assert "result" not in data
        assert data["error"] == {"code": -32601, "message": "Method not found"}

    def test_success_with_null_result_keeps_result_key(self):
        data = json.loads(encode(make_success_response(3, None)))
        assert data == {"jsonrpc": "2.0", "id": 3, "result": None}

    def test_roundtrip_request(self):
        request = Request(jsonrpc="2.0", method="tools/call", params={"name": "echo"}, id="r-1")
        assert decode(encode(request)) == request


class TestMakeErrorResponse:
    """Tests for make_error_response()."""

    def test_standard_message_used_by_default(self):
        response = make_error_response(None, INTERNAL_ERROR)
        assert response.error == {"code": -32603, "message": "Internal error"}
        assert response.id is None

    def test_data_attached_when_given(self):
        response = make_error_response(9, INTERNAL_ERROR, data="Unknown tool: x")
        assert response.error["data"] == "Unknown tool: x"
        assert response.error["message"] == "Internal error"

    def test_custom_message(self):
        response = make_error_response(9, -32000, "Server busy")
        assert response.error == {"code": -32000, "message": "Server busy"}
