"""Program identity and storage key derivation.

Tracks and manifests live under a language-scoped prefix. The generation lock
is keyed by (program_type, program_identity, variant) only, so one program
has a single lock whichever language a caller names it with.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from radioflow.exceptions import ConfigurationError

VARIANT_ROLES: dict[str, str] = {
    "kids": "educators",
    "parent": "parents",
}


def _clean_part(value: object, field_name: str) -> str:
    text = str(value if value is not None else "").strip().strip("/")
    if not text:
        raise ConfigurationError(f"{field_name} is required")
    if "/" in text or ".." in text:
        raise ConfigurationError(f"{field_name} must not contain path separators: {text!r}")
    return text


@dataclass(frozen=True)
class LockKey:
    """Identity of one generation lock: (program_type, program_identity, variant)."""

    program_type: str
    program_identity: str
    variant: str

    def __str__(self) -> str:
        return f"{self.program_type}/{self.program_identity}/{self.variant}"

    @classmethod
    def parse(cls, value: "str | LockKey") -> "LockKey":
        if isinstance(value, LockKey):
            return value
        parts = [p for p in str(value or "").strip().split("/") if p]
        if len(parts) != 3:
            raise ConfigurationError(
                f"lock key must look like 'program_type/program_identity/variant', got {value!r}"
            )
        return cls(
            program_type=_clean_part(parts[0], "program_type"),
            program_identity=_clean_part(parts[1], "program_identity"),
            variant=_clean_part(parts[2], "variant"),
        )

    @property
    def object_key(self) -> str:
        return f"{self.program_identity}/{self.program_type}/generation-lock-{self.variant}.json"


@dataclass(frozen=True)
class ProgramIdentity:
    program_type: str
    program_identity: str
    variant: str
    language: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "program_type", _clean_part(self.program_type, "program_type"))
        object.__setattr__(
            self, "program_identity", _clean_part(self.program_identity, "program_identity")
        )
        object.__setattr__(self, "variant", _clean_part(self.variant, "variant"))
        language = str(self.language or "").strip().strip("/")
        if "/" in language:
            raise ConfigurationError(f"language must not contain path separators: {language!r}")
        object.__setattr__(self, "language", language)

    @property
    def lock_key(self) -> LockKey:
        return LockKey(
            program_type=self.program_type,
            program_identity=self.program_identity,
            variant=self.variant,
        )

    @property
    def role(self) -> str:
        return VARIANT_ROLES.get(self.variant, self.variant)

    @property
    def prefix(self) -> str:
        base = f"{self.program_identity}/{self.program_type}"
        return f"{self.language}/{base}" if self.language else base

    @property
    def track_key(self) -> str:
        return f"{self.prefix}/radio-program-{self.variant}.mp3"

    @property
    def manifest_key(self) -> str:
        return f"{self.prefix}/last-program-manifest-{self.variant}.json"

    @property
    def lock_object_key(self) -> str:
        return self.lock_key.object_key

    def to_dict(self) -> dict[str, str]:
        return {
            "program_type": self.program_type,
            "program_identity": self.program_identity,
            "variant": self.variant,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgramIdentity":
        return cls(
            program_type=str(data.get("program_type") or ""),
            program_identity=str(data.get("program_identity") or ""),
            variant=str(data.get("variant") or ""),
            language=str(data.get("language") or ""),
        )
