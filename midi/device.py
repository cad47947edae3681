from __future__ import annotations
import time
import rtmidi
from core.logger import AppLogger
from midi.registers import Register, RegisterError
from midi.sysex import DEFAULT_DEVICE, SysExError

POLL_INTERVAL = 0.001


def find_port(ports: list[str], name: str) -> int | None:
    # Prefer an exact match, then any port whose name contains the request
    for i, port in enumerate(ports):
        if port == name:
            return i
    for i, port in enumerate(ports):
        if name in port:
            return i
    return None


def _hex(message) -> str:
    return " ".join(f"{b:02X}" for b in message)


class SC55Device:
    """Sends SysEx to an SC-55 over a named MIDI port and reads replies."""

    def __init__(self, logger: AppLogger | None = None, device_id: int = DEFAULT_DEVICE) -> None:
        self._midi_out = rtmidi.MidiOut()
        self._midi_in = rtmidi.MidiIn()
        self._connected = False
        self._has_input = False
        self._port_name: str | None = None
        self._logger = logger or AppLogger()
        self.device_id = device_id

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def port_name(self) -> str | None:
        return self._port_name

    def _open(self, midi_port, name: str, direction: str) -> str:
        ports = midi_port.get_ports()
        index = find_port(ports, name)
        if index is None:
            valid = "; ".join(repr(p) for p in ports) or "none"
            raise RuntimeError(f"No MIDI {direction} port matching {name!r}: valid ports: {valid}")
        try:
            midi_port.open_port(index)
        except rtmidi.SystemError as exc:
            raise RuntimeError(
                f"Could not open MIDI {direction} port '{ports[index]}'. "
                "It may be in use by another application."
            ) from exc
        return ports[index]

    def connect(self, port_name: str, with_input: bool = True) -> None:
        if self._connected:
            self.disconnect()
        opened = self._open(self._midi_out, port_name, "output")
        self._logger.midi(f"OUT: {opened}")
        if with_input:
            # Input and output port indices are independent on Windows,
            # so the input side is looked up by name as well.
            try:
                in_name = self._open(self._midi_in, port_name, "input")
            except Exception:
                self._midi_out.close_port()
                raise
            self._midi_in.ignore_types(sysex=False)
            self._logger.midi(f"IN:  {in_name}")
        self._has_input = with_input
        self._connected = True
        self._port_name = opened

    def disconnect(self) -> None:
        if self._connected:
            self._midi_out.close_port()
            if self._has_input:
                self._midi_in.close_port()
        self._connected = False
        self._has_input = False
        self._port_name = None

    def send(self, message: bytes) -> None:
        if not self._connected:
            raise RuntimeError("Not connected to a MIDI device")
        self._logger.midi(f"TX: {_hex(message)}")
        self._midi_out.send_message(list(message))

    def _drain(self) -> list[bytes]:
        frames = []
        while True:
            event = self._midi_in.get_message()
            if event is None:
                return frames
            msg = list(event[0])
            # Some drivers pad SysEx with zeros after F7
            while msg and msg[-1] == 0:
                msg.pop()
            if msg and msg[0] == 0xF0:
                frames.append(bytes(msg))

    def query(self, register: Register, timeout: float = 1.0) -> int:
        """Request ``register`` and wait for the matching DT1 reply.

        Replies for other devices or addresses, and frames that fail to
        decode, are logged and skipped.
        """
        if not self._connected or not self._has_input:
            raise RuntimeError("Not connected to a MIDI device with input")
        self._drain()
        self.send(register.get(self.device_id))
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            for frame in self._drain():
                self._logger.midi(f"RX: {_hex(frame)}")
                try:
                    device, value = register.unmarshal(frame)
                except (SysExError, RegisterError) as exc:
                    self._logger.midi(f"RX ignored: {exc}")
                    continue
                if device == self.device_id:
                    return value
            time.sleep(POLL_INTERVAL)
        raise TimeoutError(f"No reply for register 0x{register.address:06X} within {timeout}s")
