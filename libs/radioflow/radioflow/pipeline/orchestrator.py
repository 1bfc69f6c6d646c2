"""Program generation orchestrator (resolve -> lock -> fetch -> mix -> publish)."""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from radioflow.config import Settings
from radioflow.error_codes import ErrorCode
from radioflow.exceptions import (
    ConfigurationError,
    LockContentionError,
    LockUnavailableError,
    RadioFlowError,
    SegmentOrderError,
    StageExecutionError,
)
from radioflow.lock.generation_lock import GenerationLock
from radioflow.models.identity import ProgramIdentity
from radioflow.models.manifest import Manifest
from radioflow.models.segment import (
    CombineWithBackgroundSegment,
    Recording,
    SegmentPlan,
    url_basename,
)
from radioflow.pipeline.fetcher import MaterializedSegment, RemoteFetcher
from radioflow.pipeline.publisher import Publisher
from radioflow.pipeline.resolver import (
    SystemAssetCatalog,
    build_segment_plan,
    parse_segments,
    recording_filter,
)
from radioflow.providers.mixing.base import MixingEngine
from radioflow.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    FETCH = "fetch"
    MIX = "mix"
    PUBLISH = "publish"


_DEFAULT_STAGE_CODES: dict[Stage, ErrorCode] = {
    Stage.FETCH: ErrorCode.FETCH_FAILED,
    Stage.MIX: ErrorCode.MIXING_FAILED,
    Stage.PUBLISH: ErrorCode.PUBLISH_FAILED,
}


@dataclass
class GenerationRequest:
    identity: ProgramIdentity
    recordings: list[Recording] = field(default_factory=list)
    segments: SegmentPlan | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GenerationRequest":
        identity_raw = data.get("identity")
        if not isinstance(identity_raw, dict):
            raise ConfigurationError("identity is required")
        recordings_raw = data.get("recordings") or []
        if not isinstance(recordings_raw, list):
            raise ConfigurationError("recordings must be a list")
        recordings = [
            Recording.from_dict(r) if isinstance(r, dict) else Recording(filename=url_basename(str(r)), url=str(r))
            for r in recordings_raw
        ]
        segments_raw = data.get("segments")
        segments = parse_segments(segments_raw) if segments_raw is not None else None
        return cls(
            identity=ProgramIdentity.from_dict(identity_raw),
            recordings=recordings,
            segments=segments,
        )


@dataclass
class GenerationResult:
    url: str
    manifest: Manifest
    manifest_published: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, "url": self.url, "manifest": self.manifest.to_dict()}


def verify_segment_order(indexes: list[int], expected_count: int) -> None:
    if indexes != list(range(expected_count)):
        raise SegmentOrderError(
            f"rendered segments out of order (expected 0..{expected_count - 1}, got {indexes})"
        )


def program_needs_regeneration(
    current_recordings: Iterable[Recording | dict[str, Any] | str],
    manifest: Manifest | None,
    predicate: Callable[[str], bool],
) -> bool:
    """True when there are matching recordings and the manifest is missing or stale."""
    names: list[str] = []
    for item in current_recordings:
        if isinstance(item, Recording):
            names.append(item.filename)
        elif isinstance(item, dict):
            names.append(Recording.from_dict(item).filename)
        else:
            names.append(url_basename(str(item)))
    matching = [n for n in names if predicate(n)]
    if not matching:
        return False
    if manifest is None:
        return True
    return int(manifest.recording_count) != len(matching)


class ProgramGenerator:
    def __init__(
        self,
        settings: Settings,
        store: ObjectStore,
        mixer: MixingEngine,
        *,
        fetcher: RemoteFetcher | None = None,
        lock: GenerationLock | None = None,
        publisher: Publisher | None = None,
        assets: SystemAssetCatalog | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.mixer = mixer
        self.fetcher = fetcher or RemoteFetcher.from_settings(settings, mixer)
        self.lock = lock or GenerationLock.from_settings(settings, store)
        self.publisher = publisher or Publisher(store)
        self.assets = assets or SystemAssetCatalog.from_settings(settings)

    @staticmethod
    def _stage_error(stage: Stage, exc: BaseException, lock_key: str) -> StageExecutionError:
        if isinstance(exc, RadioFlowError):
            code = exc.error_code
        else:
            code = _DEFAULT_STAGE_CODES.get(stage, ErrorCode.UNKNOWN)
        return StageExecutionError(stage.value, str(exc), lock_key=lock_key, error_code=code)

    def resolve(self, request: GenerationRequest) -> SegmentPlan:
        """Pre-resolved segments win; otherwise plan from the recordings of this program."""
        if request.segments is not None:
            return request.segments
        predicate = recording_filter(request.identity)
        matching = [r for r in request.recordings if predicate(r.filename)]
        skipped = len(request.recordings) - len(matching)
        if skipped:
            logger.info(
                "recordings of other programs skipped (key=%s, skipped=%d)",
                request.identity.lock_key,
                skipped,
            )
        return build_segment_plan(matching, request.identity, self.assets)

    def snapshot_for(self, request: GenerationRequest, plan: SegmentPlan) -> list[str]:
        if request.recordings:
            predicate = recording_filter(request.identity)
            return sorted(r.filename for r in request.recordings if predicate(r.filename))
        answers: list[str] = []
        for seg in plan.segments:
            if isinstance(seg, CombineWithBackgroundSegment):
                answers.extend(url_basename(u) for u in seg.answer_urls)
        return sorted(answers)

    def _scratch_dir(self, identity: ProgramIdentity) -> Path:
        name = (
            f"radio-{identity.program_type}-{identity.program_identity}-{identity.variant}"
            f"-{int(time.time() * 1000)}-{secrets.token_hex(4)}"
        )
        return Path(self.settings.scratch_dir) / name

    async def render(self, materialized: list[MaterializedSegment], scratch: Path) -> list[tuple[int, str]]:
        """Render each segment to one file; returns ``(plan index, path)`` pairs."""
        rendered: list[tuple[int, str]] = []
        for m in materialized:
            seg = m.segment
            if isinstance(seg, CombineWithBackgroundSegment):
                if m.background_path is None:
                    raise ConfigurationError(f"segment {m.index} has no background")
                out = scratch / f"{m.index:03d}-combined.mp3"
                await self.mixer.concatenate_with_background(m.paths, m.background_path, str(out))
                rendered.append((m.index, str(out)))
            else:
                rendered.append((m.index, m.paths[0]))
        return rendered

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        identity = request.identity
        lock_key = identity.lock_key
        key_str = str(lock_key)
        started = time.perf_counter()

        plan = self.resolve(request)
        if not plan.segments:
            raise ConfigurationError("segment plan is empty")
        snapshot = self.snapshot_for(request, plan)

        try:
            held = await self.lock.acquire(lock_key, snapshot)
        except LockUnavailableError as exc:
            logger.warning("generating without lock (key=%s): %s", key_str, exc)
            held = False
        else:
            if not held:
                status = await self.lock.generation_status(lock_key)
                raise LockContentionError(
                    key_str,
                    status.record,
                    retry_after_s=status.estimated_remaining_s,
                )

        scratch: Path | None = None
        try:
            scratch = self._scratch_dir(identity)
            scratch.mkdir(parents=True, exist_ok=True)
            logger.info(
                "generation start (key=%s, language=%s, segments=%d, snapshot=%d)",
                key_str,
                identity.language,
                len(plan),
                len(snapshot),
            )

            try:
                materialized = await self.fetcher.materialize(plan, scratch)
            except Exception as exc:
                raise self._stage_error(Stage.FETCH, exc, key_str) from exc

            try:
                rendered = await self.render(materialized, scratch)
                verify_segment_order([index for index, _ in rendered], len(plan))
                track_path = scratch / f"radio-program-{identity.variant}.mp3"
                await self.mixer.assemble_final([path for _, path in rendered], str(track_path))
            except Exception as exc:
                raise self._stage_error(Stage.MIX, exc, key_str) from exc

            try:
                url = await self.publisher.publish(track_path, identity)
            except Exception as exc:
                raise self._stage_error(Stage.PUBLISH, exc, key_str) from exc

            manifest = Manifest.for_identity(
                identity,
                program_url=url,
                recording_count=len(snapshot),
                segment_count=len(plan),
                files_used=plan.files_used(),
                version=self.settings.manifest_version,
            )
            manifest_ok = await self.publisher.publish_manifest(manifest, identity)

            logger.info(
                "generation done (key=%s, elapsed_s=%.2f, recordings=%d)",
                key_str,
                time.perf_counter() - started,
                manifest.recording_count,
            )
            return GenerationResult(url=url, manifest=manifest, manifest_published=manifest_ok)
        finally:
            await self.publisher.cleanup(scratch)
            if held:
                await self.lock.release(lock_key)
