"""
test_messages.py — Push frame decoding (model.messages).

Covers:
  - Cell update frames keep only the fields they carry
  - Presence frames (UserJoined / UserLeft)
  - Malformed or unknown frames are dropped
"""
from __future__ import annotations

import json

from aixcel.model.messages import CellUpdated, UserJoined, UserLeft, parse_message


class TestParseMessage:
    def test_full_cell_update(self):
        frame = json.dumps({
            "sheet": "default", "row": 3, "col": 1, "value": "x",
            "font_weight": "bold", "font_style": None, "background_color": None, "user_id": "u1",
        })
        msg = parse_message(frame)
        assert isinstance(msg, CellUpdated)
        assert (msg.sheet, msg.row, msg.col, msg.user_id) == ("default", 3, 1, "u1")
        assert msg.changes == {"value": "x", "font_weight": "bold", "font_style": None, "background_color": None}

    def test_partial_cell_update(self):
        msg = parse_message('{"row": 0, "col": 0, "background_color": "#fff"}')
        assert msg.changes == {"background_color": "#fff"}
        assert msg.sheet is None

    def test_null_value_becomes_empty(self):
        assert parse_message('{"row": 0, "col": 0, "value": null}').changes == {"value": ""}

    def test_presence(self):
        assert parse_message('{"type": "UserJoined", "user_id": "abc"}') == UserJoined("abc")
        assert parse_message('{"type": "UserLeft", "user_id": "abc"}') == UserLeft("abc")

    def test_presence_without_type_is_dropped(self):
        assert parse_message('{"user_id": "abc"}') is None

    def test_garbage(self):
        assert parse_message("not json") is None
        assert parse_message("[1, 2]") is None
        assert parse_message('{"row": -1, "col": 0}') is None
        assert parse_message('{"row": "a", "col": 0}') is None
