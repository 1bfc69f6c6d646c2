"""Program manifest and the combined per-variant read model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from radioflow.models.identity import ProgramIdentity
from radioflow.models.lock import _format_iso, _parse_iso, utcnow


@dataclass
class Manifest:
    program_type: str
    program_identity: str
    variant: str
    program_url: str
    recording_count: int
    language: str = ""
    segment_count: int = 0
    files_used: list[str] = field(default_factory=list)
    version: str = ""
    generated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def for_identity(cls, identity: ProgramIdentity, **kwargs: Any) -> "Manifest":
        return cls(
            program_type=identity.program_type,
            program_identity=identity.program_identity,
            variant=identity.variant,
            language=identity.language,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": _format_iso(self.generated_at),
            "program_type": self.program_type,
            "program_identity": self.program_identity,
            "variant": self.variant,
            "language": self.language,
            "program_url": self.program_url,
            "recording_count": int(self.recording_count),
            "segment_count": int(self.segment_count),
            "files_used": list(self.files_used),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manifest":
        if not isinstance(data, dict):
            raise ValueError("manifest must be an object")
        generated_at = _parse_iso(data.get("generated_at", data.get("generatedAt"))) or utcnow()
        files = data.get("files_used", data.get("filesUsed")) or []
        return cls(
            program_type=str(data.get("program_type") or data.get("world") or ""),
            program_identity=str(data.get("program_identity") or data.get("lmid") or ""),
            variant=str(data.get("variant") or data.get("type") or ""),
            language=str(data.get("language") or data.get("lang") or ""),
            program_url=str(data.get("program_url") or data.get("programUrl") or ""),
            recording_count=int(data.get("recording_count", data.get("recordingCount")) or 0),
            segment_count=int(data.get("segment_count") or 0),
            files_used=[str(x) for x in files] if isinstance(files, list) else [],
            version=str(data.get("version") or ""),
            generated_at=generated_at,
        )


# Fields of the combined view owned by each variant.
VARIANT_VIEW_FIELDS: dict[str, tuple[str, ...]] = {
    "kids": ("kids_program", "kids_recording_count", "kids_generated_at", "kids_files_used"),
    "parent": (
        "parent_program",
        "parent_recording_count",
        "parent_generated_at",
        "parent_files_used",
    ),
}


def view_fields_for(variant: str) -> tuple[str, ...]:
    known = VARIANT_VIEW_FIELDS.get(variant)
    if known is not None:
        return known
    return (
        f"{variant}_program",
        f"{variant}_recording_count",
        f"{variant}_generated_at",
        f"{variant}_files_used",
    )


def merge_manifest_view(view: dict[str, Any] | None, manifest: Manifest) -> dict[str, Any]:
    """Return a copy of ``view`` with the manifest's variant fields replaced.

    Fields owned by other variants are carried over untouched.
    """
    merged = dict(view or {})
    program_f, count_f, generated_f, files_f = view_fields_for(manifest.variant)
    merged[program_f] = manifest.program_url
    merged[count_f] = int(manifest.recording_count)
    merged[generated_f] = _format_iso(manifest.generated_at)
    merged[files_f] = list(manifest.files_used)
    merged["program_type"] = manifest.program_type
    merged["program_identity"] = manifest.program_identity
    if manifest.language:
        merged["language"] = manifest.language
    return merged
