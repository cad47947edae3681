from __future__ import annotations
import json
from pathlib import Path

_DEFAULTS = {
    "midi_port": None,
    "device_id": 0x10,
    "reply_timeout_ms": 1000,
}


class AppConfig:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "sc55ctl" / "config.json"
        self.midi_port: str | None = _DEFAULTS["midi_port"]
        self.device_id: int = _DEFAULTS["device_id"]
        self.reply_timeout_ms: int = _DEFAULTS["reply_timeout_ms"]
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def reply_timeout(self) -> float:
        return self.reply_timeout_ms / 1000

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text())
            for key in _DEFAULTS:
                if key in data:
                    setattr(self, key, data[key])
        except (json.JSONDecodeError, OSError):
            pass

    def save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {key: getattr(self, key) for key in _DEFAULTS}
        self._path.write_text(json.dumps(data, indent=2))
