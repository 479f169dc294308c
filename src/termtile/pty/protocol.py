"""Wire protocol for terminal connections

Inbound frames are either raw terminal input or a JSON control command.
Only frames whose first character is ``{`` are candidates for a control
command; anything that does not validate as one is forwarded to the
process unchanged, so a literal ``{`` typed by the user is never lost.

Control command:
    {"type": "resize", "cols": <1..65535>, "rows": <1..65535>}

Outbound frames are raw process output.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CloseCode(IntEnum):
    """Transport close codes the client can tell apart.

    Anything else (1001, 1006, ...) is an ordinary network drop: the
    session persists and reattaching is safe until the orphan timeout.
    """
    SESSION_ENDED = 1000  # process exited, do not reattach
    SPAWN_FAILED = 1011
    MISSING_SESSION = 4000
    UNAUTHORIZED = 4001

    @property
    def reason(self) -> str:
        reasons = {
            CloseCode.SESSION_ENDED: "Process exited",
            CloseCode.SPAWN_FAILED: "Failed to start session",
            CloseCode.MISSING_SESSION: "Missing session ID",
            CloseCode.UNAUTHORIZED: "Unauthorized",
        }
        return reasons[self]


# winsize fields are unsigned shorts
MAX_EXTENT = 0xFFFF


class ResizeMessage(BaseModel):
    """Resize control frame; strict so "120", 120.5 and true are rejected"""

    model_config = ConfigDict(strict=True)

    type: Literal["resize"]
    cols: int = Field(gt=0, le=MAX_EXTENT)
    rows: int = Field(gt=0, le=MAX_EXTENT)


@dataclass(frozen=True)
class TerminalInput:
    """Bytes to write to the process verbatim"""
    data: bytes


@dataclass(frozen=True)
class Resize:
    """Decoded resize command"""
    cols: int
    rows: int


Frame = TerminalInput | Resize


def decode_frame(frame: str | bytes) -> Frame:
    """Classify one inbound transport frame.

    Args:
        frame: text or binary WebSocket payload

    Returns:
        Resize for a valid control command, TerminalInput otherwise
        (including every malformed ``{``-prefixed frame).
    """
    raw = frame.encode("utf-8") if isinstance(frame, str) else bytes(frame)

    if raw[:1] == b"{":
        try:
            msg = ResizeMessage.model_validate_json(raw)
        except ValueError:
            # ValidationError, or undecodable bytes
            pass
        else:
            return Resize(cols=msg.cols, rows=msg.rows)

    return TerminalInput(data=raw)


def encode_resize(cols: int, rows: int) -> str:
    """Build a resize control frame (clients and tests)."""
    return ResizeMessage(type="resize", cols=cols, rows=rows).model_dump_json()
