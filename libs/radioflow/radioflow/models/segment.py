"""Recordings and segment plan models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union
from urllib.parse import unquote, urlsplit

from radioflow.exceptions import ConfigurationError


def url_basename(url: str) -> str:
    """Return the last path component of a URL, without query string."""
    path = urlsplit(str(url or "")).path
    return unquote(path.rsplit("/", 1)[-1])


@dataclass
class Recording:
    filename: str
    url: str
    question_id: int | None = None
    timestamp: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "url": self.url,
            "question_id": self.question_id,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Recording":
        url = str(data.get("url") or data.get("cloud_url") or data.get("cloudUrl") or "")
        filename = str(data.get("filename") or "") or url_basename(url)
        question_raw = data.get("question_id", data.get("questionId"))
        timestamp_raw = data.get("timestamp")
        return cls(
            filename=filename,
            url=url,
            question_id=_optional_int(question_raw),
            timestamp=_optional_int(timestamp_raw),
        )


def _optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    return None


@dataclass(frozen=True)
class SingleSegment:
    url: str

    kind: ClassVar[str] = "single"

    @property
    def urls(self) -> list[str]:
        return [self.url]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "url": self.url}


@dataclass(frozen=True)
class CombineWithBackgroundSegment:
    answer_urls: tuple[str, ...]
    background_url: str
    question_id: int | None = None

    kind: ClassVar[str] = "combine_with_background"

    def __post_init__(self) -> None:
        object.__setattr__(self, "answer_urls", tuple(self.answer_urls))
        if not self.answer_urls:
            raise ConfigurationError("combine_with_background segment needs at least one answer")

    @property
    def urls(self) -> list[str]:
        return [*self.answer_urls, self.background_url]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "answer_urls": list(self.answer_urls),
            "background_url": self.background_url,
            "question_id": self.question_id,
        }


@dataclass(frozen=True)
class SilenceSegment:
    duration_s: float

    kind: ClassVar[str] = "silence"

    def __post_init__(self) -> None:
        if float(self.duration_s) <= 0:
            raise ConfigurationError("silence duration must be positive")

    @property
    def urls(self) -> list[str]:
        return []

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "duration_s": float(self.duration_s)}


Segment = Union[SingleSegment, CombineWithBackgroundSegment, SilenceSegment]


def segment_from_dict(data: dict[str, Any]) -> Segment:
    """Parse one wire-format segment (snake_case or the legacy camelCase keys)."""
    kind = str(data.get("type") or data.get("kind") or "").strip()
    if kind == SingleSegment.kind:
        url = str(data.get("url") or "").strip()
        if not url:
            raise ConfigurationError("single segment requires a url")
        return SingleSegment(url=url)
    if kind == CombineWithBackgroundSegment.kind:
        answers = data.get("answer_urls", data.get("answerUrls")) or []
        background = str(data.get("background_url") or data.get("backgroundUrl") or "").strip()
        if not isinstance(answers, list) or not answers:
            raise ConfigurationError("combine_with_background segment requires answer_urls")
        if not background:
            raise ConfigurationError("combine_with_background segment requires background_url")
        return CombineWithBackgroundSegment(
            answer_urls=tuple(str(u) for u in answers),
            background_url=background,
            question_id=_optional_int(data.get("question_id", data.get("questionId"))),
        )
    if kind == SilenceSegment.kind:
        duration = data.get("duration_s", data.get("duration"))
        try:
            return SilenceSegment(duration_s=float(duration))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid silence duration: {duration!r}") from exc
    raise ConfigurationError(f"Unknown segment type: {kind!r}")


@dataclass
class SegmentPlan:
    """Ordered segments; list order is playback order."""

    segments: list[Segment] = field(default_factory=list)
    question_ids: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self):
        return iter(self.segments)

    def files_used(self) -> list[str]:
        out: list[str] = []
        for seg in self.segments:
            out.extend(url_basename(u) for u in seg.urls)
        return out

    def answer_count(self) -> int:
        return sum(
            len(seg.answer_urls)
            for seg in self.segments
            if isinstance(seg, CombineWithBackgroundSegment)
        )

    def to_list(self) -> list[dict[str, Any]]:
        return [seg.to_dict() for seg in self.segments]

    @classmethod
    def from_list(cls, items: list[dict[str, Any]]) -> "SegmentPlan":
        segments: list[Segment] = []
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                raise ConfigurationError(f"segment {i} must be an object")
            segments.append(segment_from_dict(item))
        question_ids = [
            seg.question_id
            for seg in segments
            if isinstance(seg, CombineWithBackgroundSegment) and seg.question_id is not None
        ]
        return cls(segments=segments, question_ids=question_ids)
