from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class RunMode(StrEnum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"


class SessionState(StrEnum):
    IDLE = "idle"
    AWAITING_RESULT = "awaiting_result"
    RESULT_SHOWN = "result_shown"
    SAVE_REQUESTED = "save_requested"


@dataclass(frozen=True, slots=True)
class BatchResult:
    text_output: str
    file_path: str | None = None

    @property
    def has_file(self) -> bool:
        return bool(self.file_path)

    def to_message(self) -> dict[str, str | None]:
        return {"response": self.text_output, "file": self.file_path}

    @classmethod
    def from_message(cls, payload: object) -> BatchResult:
        if not isinstance(payload, dict):
            return cls(text_output="", file_path=None)
        file_path = payload.get("file")
        return cls(
            text_output=str(payload.get("response") or ""),
            file_path=str(file_path) if file_path else None,
        )


@dataclass(slots=True)
class AppConfig:
    schema_version: int
    script_path: str
    save_extension: str
    window_geometry: str
    show_console: bool
