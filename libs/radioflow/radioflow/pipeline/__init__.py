"""Program generation pipeline."""

from radioflow.pipeline.fetcher import MaterializedSegment, RemoteFetcher, is_system_asset
from radioflow.pipeline.orchestrator import (
    GenerationRequest,
    GenerationResult,
    ProgramGenerator,
    Stage,
    program_needs_regeneration,
)
from radioflow.pipeline.publisher import Publisher
from radioflow.pipeline.resolver import (
    SystemAssetCatalog,
    build_segment_plan,
    detect_variant,
    files_used,
    parse_segments,
    recording_filter,
)

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "MaterializedSegment",
    "ProgramGenerator",
    "Publisher",
    "RemoteFetcher",
    "Stage",
    "SystemAssetCatalog",
    "build_segment_plan",
    "detect_variant",
    "files_used",
    "is_system_asset",
    "parse_segments",
    "program_needs_regeneration",
    "recording_filter",
]
