"""
Push Messages
Decoded frames of the live update channel.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from aixcel.model.cells import FORMAT_FIELDS, Coordinate

logger = logging.getLogger(__name__)

CELL_FIELDS: tuple[str, ...] = ("value",) + FORMAT_FIELDS


@dataclass(frozen=True)
class CellUpdated:
    """A cell changed somewhere. `changes` holds only the fields the frame carried."""
    sheet: Optional[str]
    row: int
    col: int
    changes: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.row, self.col)


@dataclass(frozen=True)
class UserJoined:
    user_id: str


@dataclass(frozen=True)
class UserLeft:
    user_id: str


PushMessage = Union[CellUpdated, UserJoined, UserLeft]

_PRESENCE_TYPES = {
    "UserJoined": UserJoined,
    "UserLeft": UserLeft,
}


def parse_message(text: str) -> Optional[PushMessage]:
    """
    Decode one text frame.

    Returns:
        The message, or None for frames that are not JSON objects or carry
        neither a cell position nor a known presence type.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Dropping undecodable push frame: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Dropping push frame that is not an object: {text[:80]!r}")
        return None

    if "row" in data and "col" in data:
        try:
            row, col = int(data["row"]), int(data["col"])
            coord = Coordinate(row, col)
        except (TypeError, ValueError) as e:
            logger.warning(f"Dropping cell update with bad position: {e}")
            return None
        changes = {k: data[k] for k in CELL_FIELDS if k in data}
        if changes.get("value", "") is None:
            changes["value"] = ""
        return CellUpdated(
            sheet=data.get("sheet"),
            row=coord.row,
            col=coord.col,
            changes=changes,
            user_id=data.get("user_id"),
        )

    kind = _PRESENCE_TYPES.get(data.get("type"))
    if kind is not None and data.get("user_id"):
        return kind(user_id=str(data["user_id"]))

    logger.debug(f"Ignoring push frame: {text[:80]!r}")
    return None
