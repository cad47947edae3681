import pytest
from midi.sysex import (
    checksum, data_set, data_get, unmarshal_set, parse_frames, model_id_for,
    reset_gm, reset_gs, display_message, display_image,
    MalformedFrameError, ChecksumMismatchError, SysExError,
    ROLAND_ID, DEFAULT_DEVICE, ADDR_DISPLAY_MESSAGE, ADDR_DISPLAY_IMAGE,
)


def test_roland_id():
    assert ROLAND_ID == 0x41
    assert DEFAULT_DEVICE == 0x10


def test_checksum_known_gs_reset():
    # Body of the well-known GS reset: 40 00 7F 00 -> 41
    assert checksum([0x40, 0x00, 0x7F, 0x00]) == 0x41


def test_checksum_multiple_of_128_is_zero():
    assert checksum([0x40, 0x00, 0x40]) == 0
    assert checksum([]) == 0


@pytest.mark.parametrize("body", [
    [0x7F] * 10, [0x01], [0x00, 0x00, 0x80], list(range(128)), [0xFF, 0xFF, 0xFF, 0xFF],
])
def test_checksum_in_range_and_balances_body(body):
    c = checksum(body)
    assert 0 <= c <= 127
    assert (sum(body) + c) % 128 == 0


def test_data_set_gs_reset_frame():
    assert data_set(0x10, 0x40007F, 0x00) == bytes(
        [0xF0, 0x41, 0x10, 0x42, 0x12, 0x40, 0x00, 0x7F, 0x00, 0x41, 0xF7])


def test_data_set_master_volume_frame():
    assert data_set(0x10, 0x400004, 0x7F) == bytes(
        [0xF0, 0x41, 0x10, 0x42, 0x12, 0x40, 0x00, 0x04, 0x7F, 0x3D, 0xF7])


def test_data_set_zero_checksum_frame():
    msg = data_set(0x10, 0x400000, 0x40)
    assert msg[-2] == 0x00
    assert msg[-1] == 0xF7


def test_model_id_selection():
    assert data_set(0x10, 0x100000, 0x41)[3] == 0x45
    assert data_set(0x10, 0x400000, 0x00)[3] == 0x42
    assert model_id_for(0x3FFFFF) == 0x45
    assert model_id_for(0x401119) == 0x42


def test_data_set_multiple_bytes_keep_order():
    msg = data_set(0x11, 0x400000, 0x00, 0x04, 0x00, 0x00)
    assert msg[2] == 0x11
    assert list(msg[5:8]) == [0x40, 0x00, 0x00]
    assert list(msg[8:12]) == [0x00, 0x04, 0x00, 0x00]
    assert len(msg) == 14


def test_data_get_frame():
    assert data_get(0x10, 0x401119, 1) == bytes(
        [0xF0, 0x41, 0x10, 0x42, 0x11, 0x40, 0x11, 0x19, 0x00, 0x00, 0x01, 0x15, 0xF7])


def test_data_get_size_is_big_endian():
    msg = data_get(0x10, 0x100100, 0x010203)
    assert msg[3] == 0x45
    assert list(msg[8:11]) == [0x01, 0x02, 0x03]


def test_invalid_device_and_address_raise():
    with pytest.raises(ValueError):
        data_set(0x80, 0x400000, 0)
    with pytest.raises(ValueError):
        data_set(0x10, 0x1000000, 0)
    with pytest.raises(ValueError):
        data_get(0x10, -1, 1)


def test_unmarshal_set_decodes_fields():
    device, address, payload = unmarshal_set(data_set(0x12, 0x40011C, 0x50))
    assert device == 0x12
    assert address == 0x40011C
    assert payload == bytes([0x50])


def test_unmarshal_set_accepts_list():
    _, _, payload = unmarshal_set(list(data_set(0x10, 0x100000, *b"HELLO")))
    assert payload == b"HELLO"


def test_unmarshal_set_flipped_checksum_rejected():
    msg = bytearray(data_set(0x10, 0x400004, 100))
    msg[-2] ^= 0x01
    with pytest.raises(ChecksumMismatchError) as info:
        unmarshal_set(bytes(msg))
    assert info.value.actual == msg[-2]
    assert info.value.expected == msg[-2] ^ 0x01


def test_unmarshal_set_corrupted_body_rejected():
    msg = bytearray(data_set(0x10, 0x400004, 100))
    msg[8] = 99
    with pytest.raises(ChecksumMismatchError):
        unmarshal_set(msg)


@pytest.mark.parametrize("index, value, reason", [
    (0, 0xF1, "start"),
    (-1, 0xF6, "end"),
    (1, 0x43, "Roland"),
    (3, 0x16, "model"),
    (4, 0x11, "DT1"),
])
def test_unmarshal_set_malformed(index, value, reason):
    msg = bytearray(data_set(0x10, 0x400004, 100))
    msg[index] = value
    with pytest.raises(MalformedFrameError, match=reason):
        unmarshal_set(msg)


def test_unmarshal_set_too_short():
    with pytest.raises(MalformedFrameError, match="too short"):
        unmarshal_set([0xF0, 0x41, 0x10, 0x42, 0x12, 0xF7])


def test_errors_are_value_errors():
    assert issubclass(MalformedFrameError, SysExError)
    assert issubclass(ChecksumMismatchError, SysExError)
    assert issubclass(SysExError, ValueError)


def test_reset_gm_literal_frame():
    assert reset_gm(0x10) == bytes([0xF0, 0x41, 0x10, 0x09, 0x01, 0xF7])
    assert reset_gm(0x7F)[2] == 0x7F


def test_reset_gs():
    assert reset_gs(0x10) == data_set(0x10, 0x40007F, 0x00)


def test_display_message():
    msg = display_message(0x10, "Hi")
    assert msg == data_set(0x10, ADDR_DISPLAY_MESSAGE, ord("H"), ord("i"))


def test_display_message_truncates_to_31():
    msg = display_message(0x10, "X" * 40)
    _, _, payload = unmarshal_set(msg)
    assert payload == b"X" * 31


def test_display_image_writes_packed_bitmap():
    pixels = [[False] * 16 for _ in range(16)]
    pixels[0][0] = True
    msg = display_image(0x10, pixels)
    device, address, payload = unmarshal_set(msg)
    assert address == ADDR_DISPLAY_IMAGE
    assert len(payload) == 64
    assert payload[0] == 0x10
    assert msg[3] == 0x45


def test_parse_frames_splits_and_drops_padding():
    a = data_set(0x10, 0x400004, 1)
    b = reset_gm(0x10)
    stream = a + b"\x00\x00" + b + bytes([0xF0, 0x41])
    assert parse_frames(stream) == [a, b]


def test_parse_frames_empty():
    assert parse_frames(b"") == []
