"""Turn raw recordings into an ordered segment plan."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from radioflow.config import Settings
from radioflow.exceptions import ConfigurationError, NoInputError
from radioflow.models.identity import ProgramIdentity
from radioflow.models.segment import (
    CombineWithBackgroundSegment,
    Recording,
    Segment,
    SegmentPlan,
    SingleSegment,
    url_basename,
)

logger = logging.getLogger(__name__)

_QUESTION_RE = re.compile(r"question_(\d+)")
_TIMESTAMP_RE = re.compile(r"tm_(\d+)")

RecordingPredicate = Callable[[str], bool]


@dataclass(frozen=True)
class SystemAssetCatalog:
    """URLs of the fixed assets (jingles, prompts, backgrounds) on the CDN."""

    base_url: str
    extension: str = "mp3"

    @classmethod
    def from_settings(cls, settings: Settings) -> "SystemAssetCatalog":
        return cls(base_url=settings.assets.base_url, extension=settings.assets.extension)

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path}.{self.extension}"

    def intro_jingle(self) -> str:
        return self._url("jingles/intro-jingle")

    def outro_jingle(self) -> str:
        return self._url("jingles/outro-jingle")

    def program_intro(self, identity: ProgramIdentity) -> str:
        t = identity.program_type
        return self._url(f"{t}/other/{t}-intro-{identity.role}")

    def program_outro(self, identity: ProgramIdentity) -> str:
        t = identity.program_type
        return self._url(f"{t}/other/{t}-outro-{identity.role}")

    def question_prompt(self, identity: ProgramIdentity, question_id: int) -> str:
        t = identity.program_type
        return self._url(f"{t}/questions/{t}-QID{int(question_id)}")

    def background(self, identity: ProgramIdentity) -> str:
        t = identity.program_type
        return self._url(f"{t}/other/{t}-background")


def extract_question_id(filename: str) -> int | None:
    m = _QUESTION_RE.search(str(filename or ""))
    return int(m.group(1)) if m else None


def extract_timestamp(filename: str) -> int | None:
    m = _TIMESTAMP_RE.search(str(filename or ""))
    return int(m.group(1)) if m else None


def _coerce(recording: Recording | dict[str, Any] | str) -> Recording:
    if isinstance(recording, Recording):
        return recording
    if isinstance(recording, str):
        return Recording(filename=url_basename(recording), url=recording)
    if isinstance(recording, dict):
        return Recording.from_dict(recording)
    raise ConfigurationError(f"Unsupported recording entry: {type(recording).__name__}")


def detect_variant(recordings: Iterable[Recording | dict[str, Any] | str]) -> str | None:
    """Guess the variant from recording filenames (``kids-`` vs ``parent_``)."""
    for item in recordings:
        name = _coerce(item).filename
        if name.startswith("kids-"):
            return "kids"
        if name.startswith("parent_"):
            return "parent"
    return None


def recording_filter(identity: ProgramIdentity) -> RecordingPredicate:
    """Predicate matching recording filenames that belong to ``identity``."""
    scope = (
        f"world_{re.escape(identity.program_type)}-lmid_{re.escape(identity.program_identity)}"
        r"-question_\d+-tm_\d+\.(?:mp3|webm)$"
    )
    if identity.variant == "kids":
        pattern = re.compile(rf"^kids-{scope}")
    elif identity.variant == "parent":
        pattern = re.compile(rf"^parent_[^-]+-{scope}")
    else:
        pattern = re.compile(rf"^{re.escape(identity.variant)}(?:_[^-]+)?-{scope}")

    def _matches(name: str) -> bool:
        return bool(pattern.match(url_basename(name) if "/" in name else name))

    return _matches


def files_used(plan: SegmentPlan) -> list[str]:
    return plan.files_used()


def parse_segments(raw: Any) -> SegmentPlan:
    """Parse a pre-resolved wire plan."""
    if not isinstance(raw, list):
        raise ConfigurationError("segments must be a list")
    if not raw:
        raise NoInputError("No audio segments provided")
    return SegmentPlan.from_list(raw)


def _sort_within_question(recordings: list[Recording]) -> list[Recording]:
    # Undated recordings go last, keeping their arrival order.
    def _key(rec: Recording) -> tuple[int, int]:
        ts = rec.timestamp if rec.timestamp is not None else extract_timestamp(rec.filename)
        return (1, 0) if ts is None else (0, ts)

    return sorted(recordings, key=_key)


def group_by_question(
    recordings: Iterable[Recording | dict[str, Any] | str],
) -> dict[int, list[Recording]]:
    groups: dict[int, list[Recording]] = {}
    for item in recordings:
        rec = _coerce(item)
        qid = rec.question_id
        if qid is None:
            qid = extract_question_id(rec.filename)
        if qid is None:
            qid = extract_question_id(rec.url)
        if qid is None:
            logger.warning("skip recording without question id (filename=%s)", rec.filename)
            continue
        groups.setdefault(qid, []).append(rec)
    return {qid: _sort_within_question(groups[qid]) for qid in sorted(groups)}


def build_segment_plan(
    recordings: Iterable[Recording | dict[str, Any] | str],
    identity: ProgramIdentity,
    assets: SystemAssetCatalog,
) -> SegmentPlan:
    items = list(recordings or [])
    if not items:
        raise NoInputError("No recordings to build a program from")

    groups = group_by_question(items)
    if not groups:
        raise NoInputError("No recordings with a question id")

    segments: list[Segment] = [
        SingleSegment(assets.intro_jingle()),
        SingleSegment(assets.program_intro(identity)),
    ]
    background = assets.background(identity)
    for qid, group in groups.items():
        segments.append(SingleSegment(assets.question_prompt(identity, qid)))
        segments.append(
            CombineWithBackgroundSegment(
                answer_urls=tuple(rec.url for rec in group),
                background_url=background,
                question_id=qid,
            )
        )
    segments += [
        SingleSegment(assets.outro_jingle()),
        SingleSegment(assets.program_outro(identity)),
    ]

    logger.info(
        "segment plan built (key=%s, questions=%d, recordings=%d, segments=%d)",
        identity.lock_key,
        len(groups),
        sum(len(g) for g in groups.values()),
        len(segments),
    )
    return SegmentPlan(segments=segments, question_ids=list(groups))
