from __future__ import annotations
import sys
from PyQt6.QtCore import QObject, pyqtSignal


class AppLogger(QObject):
    message_logged = pyqtSignal(str, str)  # category, message

    def __init__(self, quiet: bool = False, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.quiet = quiet

    def log(self, category: str, message: str) -> None:
        if not self.quiet or category == "ERROR":
            print(f"[{category}] {message}", file=sys.stderr, flush=True)
        self.message_logged.emit(category, message)

    def midi(self, message: str) -> None:
        self.log("MIDI", message)

    def sysex(self, message: str) -> None:
        self.log("SYSEX", message)

    def general(self, message: str) -> None:
        self.log("GENERAL", message)

    def error(self, message: str) -> None:
        self.log("ERROR", message)
