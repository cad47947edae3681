"""Command-line control of a Roland SC-55 over MIDI SysEx.

Usage:
    python main.py --midi-port "UM-ONE" reset-gs
    python main.py --output logo.syx display-image logo.png
    python main.py register-list --important
    python main.py --midi-port "UM-ONE" register-get part-1.level
"""
from __future__ import annotations
import argparse
import sys
from pathlib import Path

import numpy as np
from PIL import Image

from core.config import AppConfig
from core.logger import AppLogger
from midi import sysex
from midi.device import SC55Device
from midi.registers import (
    MASTER_KEY_SHIFT, MASTER_PAN, MASTER_TUNE, MASTER_VOLUME,
    RegisterCatalog, RegisterError, build_catalog,
)
from midi.syx_file import read_syx, write_syx

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


class UsageError(Exception):
    pass


def _int(text: str) -> int:
    return int(text, 0)


def _register_key(text: str) -> str | int:
    # Registers may be named or given as an absolute address (0x401119)
    try:
        return int(text, 0)
    except ValueError:
        return text


class App:
    def __init__(self, args: argparse.Namespace, config: AppConfig,
                 catalog: RegisterCatalog, logger: AppLogger) -> None:
        self.args = args
        self.config = config
        self.catalog = catalog
        self.logger = logger
        self.device_id = args.device_id if args.device_id is not None else config.device_id
        if not (0 <= self.device_id <= 0x7F):
            raise UsageError(f"Device ID must be 0-127, got {self.device_id:#x}")

    def _port(self) -> str:
        port = self.args.midi_port or self.config.midi_port
        if not port:
            raise UsageError("No MIDI port given (use --midi-port or set midi_port in the config file)")
        return port

    def emit(self, messages: list[bytes]) -> None:
        """Write messages to the --output file, or send them to the port."""
        for msg in messages:
            self.logger.sysex(" ".join(f"{b:02X}" for b in msg))
        if self.args.output is not None:
            write_syx(self.args.output, messages)
            self.logger.general(f"Wrote {len(messages)} message(s) to {self.args.output}")
            return
        device = SC55Device(self.logger, self.device_id)
        device.connect(self._port(), with_input=False)
        try:
            for msg in messages:
                device.send(msg)
        finally:
            device.disconnect()

    # -- subcommands --

    def reset_gm(self) -> int:
        self.emit([sysex.reset_gm(self.device_id)])
        return EXIT_OK

    def reset_gs(self) -> int:
        self.emit([sysex.reset_gs(self.device_id)])
        return EXIT_OK

    def display_message(self) -> int:
        self.emit([sysex.display_message(self.device_id, " ".join(self.args.text))])
        return EXIT_OK

    def display_image(self) -> int:
        try:
            with Image.open(self.args.image) as img:
                pixels = np.asarray(img.convert("RGB"))
        except OSError as exc:
            raise UsageError(f"Could not load image {self.args.image}: {exc}") from exc
        try:
            msg = sysex.display_image(self.device_id, pixels)
        except ValueError as exc:
            raise UsageError(str(exc)) from exc
        self.emit([msg])
        return EXIT_OK

    def set_master(self) -> int:
        self.emit([self.args.register.set(self.device_id, self.args.value)])
        return EXIT_OK

    def register_list(self) -> int:
        for reg in self.catalog.all_registers(important_only=self.args.important):
            print(f"{reg.address:8x}  {self.catalog.name_of(reg)}")
        return EXIT_OK

    def register_get(self) -> int:
        reg = self.catalog.lookup(self.args.name)
        device = SC55Device(self.logger, self.device_id)
        device.connect(self._port())
        try:
            value = device.query(reg, timeout=self.config.reply_timeout)
        finally:
            device.disconnect()
        print(value)
        return EXIT_OK

    def register_set(self) -> int:
        reg = self.catalog.lookup(self.args.name)
        self.emit([reg.set(self.device_id, self.args.value)])
        return EXIT_OK

    def register_decode(self) -> int:
        failures = 0
        for frame in read_syx(self.args.file):
            try:
                device, address, _ = sysex.unmarshal_set(frame)
                reg = self.catalog.lookup(address)
                _, value = reg.unmarshal(frame)
            except (sysex.SysExError, RegisterError) as exc:
                self.logger.error(str(exc))
                failures += 1
                continue
            print(f"{self.catalog.name_of(reg)} = {value}  (device 0x{device:02X})")
        return EXIT_FAILURE if failures else EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sc55ctl", description="Control a Roland SC-55 via SysEx")
    parser.add_argument("--midi-port", help="Name of the MIDI port the SC-55 is connected to")
    parser.add_argument("--device-id", type=_int, help="SC-55 device ID (default 0x10)")
    parser.add_argument("--output", type=Path, help="Write messages to this .syx file instead of sending")
    parser.add_argument("--config", type=Path, help="Path to config.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log MIDI traffic")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("reset-gm", help="Reset the SoundCanvas into General MIDI mode").set_defaults(
        func=App.reset_gm)
    sub.add_parser("reset-gs", help="Reset the SoundCanvas into GS mode").set_defaults(
        func=App.reset_gs)

    p = sub.add_parser("display-message", help="Show a message on the front panel")
    p.add_argument("text", nargs="+")
    p.set_defaults(func=App.display_message)

    p = sub.add_parser("display-image", help="Show a 16x16 picture on the front panel")
    p.add_argument("image", type=Path)
    p.set_defaults(func=App.display_image)

    for name, reg, help_text in [
        ("master-volume", MASTER_VOLUME, "Set the master volume (0-127)"),
        ("master-pan", MASTER_PAN, "Set the master pan (-63..63)"),
        ("master-tune", MASTER_TUNE, "Set the master tune (-1000..1000, 0.1 cent steps)"),
        ("master-key-shift", MASTER_KEY_SHIFT, "Set the master key shift (-24..24 semitones)"),
    ]:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("value", type=_int)
        p.set_defaults(func=App.set_master, register=reg)

    p = sub.add_parser("register-list", help="List all registers on the SoundCanvas")
    p.add_argument("--important", action="store_true", help="Only front-panel registers")
    p.set_defaults(func=App.register_list)

    p = sub.add_parser("register-get", help="Get the value of a register")
    p.add_argument("name", type=_register_key)
    p.set_defaults(func=App.register_get)

    p = sub.add_parser("register-set", help="Set the value of a register")
    p.add_argument("name", type=_register_key)
    p.add_argument("value", type=_int)
    p.set_defaults(func=App.register_set)

    p = sub.add_parser("register-decode", help="Decode the register values in a .syx file")
    p.add_argument("file", type=Path)
    p.set_defaults(func=App.register_decode)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = AppLogger(quiet=not args.verbose)
    try:
        app = App(args, AppConfig(args.config), build_catalog(), logger)
        return args.func(app)
    except (UsageError, RegisterError) as exc:
        logger.error(str(exc))
        return EXIT_USAGE
    except (RuntimeError, TimeoutError, OSError, ValueError) as exc:
        logger.error(str(exc))
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
