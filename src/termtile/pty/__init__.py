"""Pty module

- process: pty process adapter (ShellProcess) over ptyprocess
- protocol: wire protocol codec and close codes
- registry: SessionRegistry
"""

from .process import ShellProcess, SpawnError, TerminalProcess, spawn_shell
from .protocol import CloseCode, Resize, TerminalInput, decode_frame, encode_resize
from .registry import Endpoint, Session, SessionCreateError, SessionRegistry

__all__ = [
    # Process
    "TerminalProcess",
    "ShellProcess",
    "SpawnError",
    "spawn_shell",
    # Protocol
    "CloseCode",
    "Resize",
    "TerminalInput",
    "decode_frame",
    "encode_resize",
    # Registry
    "Endpoint",
    "Session",
    "SessionCreateError",
    "SessionRegistry",
]
