"""
Unit tests for the chat client's turn handling.
"""

from unittest.mock import Mock

import pytest
import requests

from chat_turns import send_turn


@pytest.fixture
def state():
    return {"chat": [], "upload_key": 0}


def _upload(name="look.png"):
    upload = Mock()
    upload.name = name
    return upload


class TestSendTurn:
    def test_photo_sent_once(self, state):
        chat_fn = Mock(return_value=[{"id": "SKU1"}])
        upload = _upload()

        send_turn(state, "like this", upload, chat_fn)

        chat_fn.assert_called_once_with("like this", upload)
        assert state["upload_key"] == 1
        assert state["chat"][0]["content"] == "like this (photo: look.png)"
        assert state["chat"][1]["products"] == [{"id": "SKU1"}]

    def test_text_only_keeps_uploader(self, state):
        chat_fn = Mock(return_value={"reply": "Hi there!"})

        send_turn(state, "hello", None, chat_fn)

        chat_fn.assert_called_once_with("hello", None)
        assert state["upload_key"] == 0
        assert state["chat"][1] == {"role": "assistant", "content": "Hi there!"}

    def test_image_only_turn(self, state):
        chat_fn = Mock(return_value=[])

        send_turn(state, None, _upload("shoe.jpg"), chat_fn)

        assert chat_fn.call_args.args[0] == ""
        assert state["chat"][0]["content"] == "(photo: shoe.jpg)"
        assert state["upload_key"] == 1

    def test_failed_request_still_clears_photo(self, state):
        chat_fn = Mock(side_effect=requests.ConnectionError("refused"))

        send_turn(state, "like this", _upload(), chat_fn)

        assert state["chat"][1]["content"].startswith("Request failed:")
        assert state["upload_key"] == 1
