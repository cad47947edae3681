from __future__ import annotations
from pathlib import Path
import mido


def write_syx(path: Path, messages: list[bytes]) -> None:
    """Write complete F0..F7 frames to a binary .syx file.

    mido rejects data bytes above 0x7F, so frames that are not valid MIDI
    raise ValueError instead of producing a file the device would choke on.
    """
    msgs = [mido.Message.from_bytes(list(m)) for m in messages]
    for msg in msgs:
        if msg.type != "sysex":
            raise ValueError(f"Not a SysEx message: {msg}")
    mido.write_syx_file(str(path), msgs)


def read_syx(path: Path) -> list[bytes]:
    """Read every SysEx frame in a .syx file, F0/F7 delimiters included."""
    return [bytes(msg.bytes()) for msg in mido.read_syx_file(str(path))]
