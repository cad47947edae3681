from __future__ import annotations
from midi.bitmap import pack_bitmap

ROLAND_ID = 0x41
DEFAULT_DEVICE = 0x10  # Factory default device ID (17 on the front panel)

SYSEX_START = 0xF0
SYSEX_END = 0xF7

CMD_RQ1 = 0x11
CMD_DT1 = 0x12

# The SC-55 answers to two model IDs depending on the address range
MODEL_ID_DISPLAY = 0x45
MODEL_ID_GS = 0x42
MODEL_IDS = (MODEL_ID_GS, MODEL_ID_DISPLAY)

ADDR_DISPLAY_MESSAGE = 0x100000
ADDR_DISPLAY_IMAGE = 0x100100
ADDR_MASTER_BASE = 0x400000
ADDR_MODE_SET = 0x40007F

MAX_ADDRESS = 1 << 24
DISPLAY_MESSAGE_MAX = 31

_HEADER_LEN = 5        # F0 41 dev model cmd
_ADDRESS_LEN = 3
_TRAILER_LEN = 2       # checksum F7
MIN_DT1_LENGTH = _HEADER_LEN + _ADDRESS_LEN + _TRAILER_LEN


class SysExError(ValueError):
    """Base class for frames that cannot be decoded."""


class MalformedFrameError(SysExError):
    def __init__(self, reason: str, message: bytes | None = None) -> None:
        super().__init__(f"Malformed SysEx frame: {reason}")
        self.reason = reason
        self.message = message


class ChecksumMismatchError(SysExError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Checksum mismatch: frame carries 0x{actual:02X}, body sums to 0x{expected:02X}"
        )
        self.expected = expected
        self.actual = actual


def checksum(body) -> int:
    """Roland checksum: the value that brings the body sum to a multiple of 128."""
    return (128 - sum(body) % 128) % 128


def model_id_for(address: int) -> int:
    return MODEL_ID_DISPLAY if address < ADDR_MASTER_BASE else MODEL_ID_GS


def _check_device(device: int) -> int:
    if not (0 <= device <= 0x7F):
        raise ValueError(f"Device ID must be 0-127, got {device}")
    return device


def _check_address(address: int) -> int:
    if not (0 <= address < MAX_ADDRESS):
        raise ValueError(f"Address must fit in 24 bits, got 0x{address:X}")
    return address


def _put_u24(buf: bytearray, pos: int, value: int) -> None:
    buf[pos] = (value >> 16) & 0xFF
    buf[pos + 1] = (value >> 8) & 0xFF
    buf[pos + 2] = value & 0xFF


def _build_frame(device: int, command: int, address: int, payload: bytes) -> bytes:
    """Lay out a DT1/RQ1 frame in a buffer sized for it up front."""
    _check_device(device)
    _check_address(address)
    length = _HEADER_LEN + _ADDRESS_LEN + len(payload) + _TRAILER_LEN
    buf = bytearray(length)
    buf[0] = SYSEX_START
    buf[1] = ROLAND_ID
    buf[2] = device
    buf[3] = model_id_for(address)
    buf[4] = command
    _put_u24(buf, _HEADER_LEN, address)
    body_end = _HEADER_LEN + _ADDRESS_LEN + len(payload)
    buf[_HEADER_LEN + _ADDRESS_LEN:body_end] = payload
    buf[body_end] = checksum(buf[_HEADER_LEN:body_end])
    buf[body_end + 1] = SYSEX_END
    return bytes(buf)


def data_set(device: int, address: int, *data: int) -> bytes:
    """DT1 (data set) message writing ``data`` starting at ``address``."""
    return _build_frame(device, CMD_DT1, address, bytes(data))


def data_get(device: int, address: int, size: int) -> bytes:
    """RQ1 (data request) message asking for ``size`` bytes at ``address``."""
    if not (0 <= size < MAX_ADDRESS):
        raise ValueError(f"Request size must fit in 24 bits, got {size}")
    size_bytes = bytearray(3)
    _put_u24(size_bytes, 0, size)
    return _build_frame(device, CMD_RQ1, address, bytes(size_bytes))


def unmarshal_set(message) -> tuple[int, int, bytes]:
    """Decode a DT1 message into ``(device, address, payload)``.

    Raises MalformedFrameError for framing faults and ChecksumMismatchError
    when the trailing checksum does not match the body.
    """
    message = bytes(message)
    if len(message) < MIN_DT1_LENGTH:
        raise MalformedFrameError(f"too short ({len(message)} bytes)", message)
    if message[0] != SYSEX_START:
        raise MalformedFrameError(f"bad start byte 0x{message[0]:02X}", message)
    if message[-1] != SYSEX_END:
        raise MalformedFrameError(f"bad end byte 0x{message[-1]:02X}", message)
    if message[1] != ROLAND_ID:
        raise MalformedFrameError(f"not a Roland message (ID 0x{message[1]:02X})", message)
    if message[3] not in MODEL_IDS:
        raise MalformedFrameError(f"unknown model ID 0x{message[3]:02X}", message)
    if message[4] != CMD_DT1:
        raise MalformedFrameError(f"not a DT1 command (0x{message[4]:02X})", message)
    body = message[_HEADER_LEN:-_TRAILER_LEN]
    expected = checksum(body)
    if expected != message[-2]:
        raise ChecksumMismatchError(expected, message[-2])
    address = (body[0] << 16) | (body[1] << 8) | body[2]
    return message[2], address, body[_ADDRESS_LEN:]


def parse_frames(data) -> list[bytes]:
    """Split a byte stream into individual F0..F7 frames.

    Bytes outside a frame (including the zero padding some drivers append
    after F7) are dropped; an unterminated trailing frame is discarded.
    """
    frames = []
    start = None
    for i, b in enumerate(data):
        if b == SYSEX_START:
            start = i
        elif b == SYSEX_END and start is not None:
            frames.append(bytes(data[start:i + 1]))
            start = None
    return frames


def reset_gm(device: int = DEFAULT_DEVICE) -> bytes:
    """GM System On. Not a DT1 command, so no address or checksum."""
    return bytes([SYSEX_START, ROLAND_ID, _check_device(device), 0x09, 0x01, SYSEX_END])


def reset_gs(device: int = DEFAULT_DEVICE) -> bytes:
    return data_set(device, ADDR_MODE_SET, 0x00)


def display_message(device: int, text: str) -> bytes:
    # The manual allows 32 characters but a full 32 corrupts the display
    raw = text.encode("ascii", errors="replace")[:DISPLAY_MESSAGE_MAX]
    return data_set(device, ADDR_DISPLAY_MESSAGE, *raw)


def display_image(device: int, pixels) -> bytes:
    """Show a 16x16 monochrome picture on the front panel LCD."""
    return data_set(device, ADDR_DISPLAY_IMAGE, *pack_bitmap(pixels))
