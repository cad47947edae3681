from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import NamedTuple

from midi.sysex import data_get, data_set, unmarshal_set, MAX_ADDRESS


class RegisterError(ValueError):
    """Base class for register-level decode and lookup failures."""


class RegisterMismatchError(RegisterError):
    pass


class ValueOutOfRangeError(RegisterError):
    def __init__(self, raw: int, min_val: int, max_val: int) -> None:
        super().__init__(f"Raw value {raw} outside [{min_val}, {max_val}]")
        self.raw = raw
        self.min_val = min_val
        self.max_val = max_val


class UnknownRegisterError(RegisterError, KeyError):
    def __init__(self, key) -> None:
        label = f"0x{key:06X}" if isinstance(key, int) else repr(key)
        super().__init__(f"Unknown register {label}")
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


def clamp(x: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, x))


@dataclass(frozen=True)
class Register:
    """One addressable cell of SC-55 memory.

    ``min_val``/``max_val`` bound the raw device value; the user-facing
    (logical) value is ``raw - zero``.
    """
    address: int
    size: int
    min_val: int
    max_val: int
    zero: int = 0

    def __post_init__(self) -> None:
        if not (0 <= self.address < MAX_ADDRESS):
            raise ValueError(f"Register address must fit in 24 bits, got 0x{self.address:X}")
        if not (1 <= self.size <= 4):
            raise ValueError(f"Register size must be 1-4 bytes, got {self.size}")
        if self.min_val > self.max_val:
            raise ValueError(f"min_val {self.min_val} > max_val {self.max_val}")
        if not (self.min_val <= self.zero <= self.max_val):
            raise ValueError(f"zero {self.zero} outside [{self.min_val}, {self.max_val}]")
        if self.min_val < 0 or self.max_val >= 1 << (8 * self.size):
            raise ValueError(f"Range [{self.min_val}, {self.max_val}] does not fit {self.size} byte(s)")

    @property
    def logical_min(self) -> int:
        return self.min_val - self.zero

    @property
    def logical_max(self) -> int:
        return self.max_val - self.zero

    def offset(self, base: int) -> Register:
        return Register(self.address + base, self.size, self.min_val, self.max_val, self.zero)

    def get(self, device: int) -> bytes:
        return data_get(device, self.address, self.size)

    def set(self, device: int, value: int) -> bytes:
        """DT1 message storing ``value``, saturated to the register's range."""
        raw = clamp(value, self.logical_min, self.logical_max) + self.zero
        data = raw.to_bytes(4, "little")[:self.size]
        return data_set(device, self.address, *data)

    def unmarshal(self, message) -> tuple[int, int]:
        """Decode a DT1 reply for this register into ``(device, value)``."""
        device, address, payload = unmarshal_set(message)
        if address != self.address:
            raise RegisterMismatchError(
                f"Reply is for address 0x{address:06X}, expected 0x{self.address:06X}"
            )
        if len(payload) != self.size:
            raise RegisterMismatchError(
                f"Reply carries {len(payload)} byte(s), register 0x{self.address:06X} has {self.size}"
            )
        raw = int.from_bytes(payload, "little")
        if not (self.min_val <= raw <= self.max_val):
            raise ValueOutOfRangeError(raw, self.min_val, self.max_val)
        return device, raw - self.zero


# ---------------------------------------------------------------------------
# Master (system) parameters, fixed addresses
# ---------------------------------------------------------------------------

MASTER_TUNE = Register(0x400000, 4, 0x18, 0x7E8, 0x400)  # -100.0..+100.0 cent in 0.1 steps
MASTER_VOLUME = Register(0x400004, 1, 0, 127)
MASTER_KEY_SHIFT = Register(0x400005, 1, 0x28, 0x58, 0x40)
MASTER_PAN = Register(0x400006, 1, 0x01, 0x7F, 0x40)

_MASTER_REGISTERS: list[tuple[str, Register]] = [
    ("master-tune", MASTER_TUNE),
    ("master-volume", MASTER_VOLUME),
    ("master-key-shift", MASTER_KEY_SHIFT),
    ("master-pan", MASTER_PAN),
    ("reverb-macro", Register(0x400130, 1, 0, 7)),
    ("reverb-character", Register(0x400131, 1, 0, 7)),
    ("reverb-pre-lpf", Register(0x400132, 1, 0, 7)),
    ("reverb-level", Register(0x400133, 1, 0, 127)),
    ("reverb-time", Register(0x400134, 1, 0, 127)),
    ("reverb-delay-feedback", Register(0x400135, 1, 0, 127)),
    ("chorus-macro", Register(0x400138, 1, 0, 7)),
    ("chorus-pre-lpf", Register(0x400139, 1, 0, 7)),
    ("chorus-level", Register(0x40013A, 1, 0, 127)),
    ("chorus-feedback", Register(0x40013B, 1, 0, 127)),
    ("chorus-delay", Register(0x40013C, 1, 0, 127)),
    ("chorus-rate", Register(0x40013D, 1, 0, 127)),
    ("chorus-depth", Register(0x40013E, 1, 0, 127)),
    ("chorus-send-to-reverb", Register(0x40013F, 1, 0, 127)),
]


# ---------------------------------------------------------------------------
# Part template: offsets relative to the part's block base
# ---------------------------------------------------------------------------

class PartField(NamedTuple):
    key: str
    offset: int
    size: int
    min_val: int
    max_val: int
    zero: int
    name: str
    important: bool = False


_SCALE_NOTES = ["c", "c#", "d", "d#", "e", "f", "f#", "g", "g#", "a", "a#", "b"]

_RX_SWITCHES = [
    "pitch-bend", "channel-pressure", "program-change", "control-change",
    "poly-pressure", "note-message", "rpn", "nrpn", "modulation", "volume",
    "panpot", "expression", "hold-1", "portamento", "sostenuto", "soft",
]

PART_TEMPLATE: list[PartField] = [
    PartField("tone_bank", 0x00, 1, 0, 127, 0, "tone-bank"),
    PartField("tone_number", 0x01, 1, 0, 127, 0, "tone-number", important=True),
    PartField("rx_channel", 0x02, 1, 0, 16, 0, "rx-channel"),  # 16 = off
    *(PartField("rx_" + s.replace("-", "_"), 0x03 + i, 1, 0, 1, 0, "rx-" + s)
      for i, s in enumerate(_RX_SWITCHES)),
    PartField("mono_poly", 0x13, 1, 0, 1, 0, "mono-poly"),
    PartField("assign_mode", 0x14, 1, 0, 2, 0, "assign-mode"),
    PartField("rhythm_part", 0x15, 1, 0, 2, 0, "rhythm-part"),
    PartField("key_shift", 0x16, 1, 0x28, 0x58, 0x40, "key-shift", important=True),
    PartField("level", 0x19, 1, 0, 127, 0, "level", important=True),
    PartField("velocity_depth", 0x1A, 1, 0, 127, 0, "velocity-depth"),
    PartField("velocity_offset", 0x1B, 1, 0, 127, 0, "velocity-offset"),
    PartField("pan", 0x1C, 1, 0, 127, 0x40, "pan", important=True),  # raw 0 = random
    PartField("key_range_low", 0x1D, 1, 0, 127, 0, "key-range-low"),
    PartField("key_range_high", 0x1E, 1, 0, 127, 0, "key-range-high"),
    PartField("cc1_number", 0x1F, 1, 0, 127, 0, "cc1-number"),
    PartField("cc2_number", 0x20, 1, 0, 127, 0, "cc2-number"),
    PartField("chorus_send", 0x21, 1, 0, 127, 0, "chorus-send", important=True),
    PartField("reverb_send", 0x22, 1, 0, 127, 0, "reverb-send", important=True),
    PartField("vibrato_rate", 0x30, 1, 0x0E, 0x72, 0x40, "vibrato-rate"),
    PartField("vibrato_depth", 0x31, 1, 0x0E, 0x72, 0x40, "vibrato-depth"),
    PartField("tvf_cutoff", 0x32, 1, 0x0E, 0x50, 0x40, "tvf-cutoff"),
    PartField("tvf_resonance", 0x33, 1, 0x0E, 0x72, 0x40, "tvf-resonance"),
    PartField("env_attack", 0x34, 1, 0x0E, 0x72, 0x40, "env-attack"),
    PartField("env_decay", 0x35, 1, 0x0E, 0x72, 0x40, "env-decay"),
    PartField("env_release", 0x36, 1, 0x0E, 0x72, 0x40, "env-release"),
    PartField("vibrato_delay", 0x37, 1, 0x0E, 0x72, 0x40, "vibrato-delay"),
    *(PartField("scale_tuning_" + n.replace("#", "_sharp"), 0x40 + i, 1, 0, 127, 0x40,
                "scale-tuning-" + n)
      for i, n in enumerate(_SCALE_NOTES)),
]

NUM_PARTS = 16
PART_BLOCK_BASE = 0x401000
PART_BLOCK_STRIDE = 0x100


def part_base_address(part_number: int) -> int:
    """Block address for front-panel part 1-16.

    The memory map numbers blocks 0-15 with part 10 (the drum part) in
    block 0, so parts 1-9 keep their number and parts 11-16 shift down one.
    """
    if not (1 <= part_number <= NUM_PARTS):
        raise ValueError(f"Part number must be 1-{NUM_PARTS}, got {part_number}")
    if part_number < 10:
        index = part_number
    elif part_number == 10:
        index = 0
    else:
        index = part_number - 1
    return PART_BLOCK_BASE + index * PART_BLOCK_STRIDE


def part_register_name(part_number: int, field_name: str) -> str:
    return f"part-{part_number}.{field_name}"


class Part:
    """The registers of one part, reachable as ``part.level`` or ``part["level"]``."""

    def __init__(self, number: int) -> None:
        self.number = number
        self.base_address = part_base_address(number)
        self._registers = MappingProxyType({
            f.key: Register(f.offset, f.size, f.min_val, f.max_val, f.zero).offset(self.base_address)
            for f in PART_TEMPLATE
        })

    def __getitem__(self, key: str) -> Register:
        return self._registers[key]

    def __getattr__(self, key: str) -> Register:
        try:
            return self.__dict__["_registers"][key]
        except KeyError:
            raise AttributeError(key) from None

    def __iter__(self):
        return iter(self._registers.items())

    def __len__(self) -> int:
        return len(self._registers)

    def __repr__(self) -> str:
        return f"Part({self.number}, base=0x{self.base_address:06X})"


class RegisterCatalog:
    """Read-only index of every known register by name and by address."""

    def __init__(self, named: list[tuple[str, Register]], important: set[Register],
                 parts: list[Part]) -> None:
        by_name: dict[str, Register] = {}
        by_address: dict[int, Register] = {}
        for name, reg in named:
            if name in by_name:
                raise ValueError(f"Duplicate register name {name!r}")
            if reg.address in by_address:
                raise ValueError(f"Duplicate register address 0x{reg.address:06X} ({name})")
            by_name[name] = reg
            by_address[reg.address] = reg
        self._by_name = MappingProxyType(by_name)
        self._by_address = MappingProxyType(by_address)
        self._names = MappingProxyType({reg: name for name, reg in named})
        self._important = frozenset(important)
        self._parts = tuple(parts)

    def get(self, name: str) -> Register | None:
        return self._by_name.get(name)

    def get_by_address(self, address: int) -> Register | None:
        return self._by_address.get(address)

    def lookup(self, key: str | int) -> Register:
        """Find a register by dotted name or absolute address."""
        reg = self.get_by_address(key) if isinstance(key, int) else self.get(key)
        if reg is None:
            raise UnknownRegisterError(key)
        return reg

    def name_of(self, register: Register) -> str:
        try:
            return self._names[register]
        except KeyError:
            raise UnknownRegisterError(register.address) from None

    def is_important(self, register: Register) -> bool:
        return register in self._important

    def all_registers(self, important_only: bool = False) -> list[Register]:
        regs = sorted(self._by_address.values(), key=lambda r: r.address)
        if important_only:
            regs = [r for r in regs if r in self._important]
        return regs

    def names(self) -> list[str]:
        return [self._names[r] for r in self.all_registers()]

    def part(self, number: int) -> Part:
        if not (1 <= number <= NUM_PARTS):
            raise ValueError(f"Part number must be 1-{NUM_PARTS}, got {number}")
        return self._parts[number - 1]

    @property
    def parts(self) -> tuple[Part, ...]:
        return self._parts

    def __len__(self) -> int:
        return len(self._by_address)

    def __contains__(self, key) -> bool:
        if isinstance(key, Register):
            return key in self._names
        if isinstance(key, int):
            return key in self._by_address
        return key in self._by_name


def build_catalog() -> RegisterCatalog:
    """Build the full register table: master registers plus parts 1-16."""
    named = list(_MASTER_REGISTERS)
    important: set[Register] = set()
    parts = [Part(n) for n in range(1, NUM_PARTS + 1)]
    for part in parts:
        for f in PART_TEMPLATE:
            reg = part[f.key]
            named.append((part_register_name(part.number, f.name), reg))
            if f.important:
                important.add(reg)
    return RegisterCatalog(named, important, parts)
