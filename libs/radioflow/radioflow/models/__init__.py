"""Domain models."""

from radioflow.models.identity import VARIANT_ROLES, LockKey, ProgramIdentity
from radioflow.models.lock import LockRecord, new_request_id, utcnow
from radioflow.models.manifest import Manifest, merge_manifest_view
from radioflow.models.segment import (
    CombineWithBackgroundSegment,
    Recording,
    Segment,
    SegmentPlan,
    SilenceSegment,
    SingleSegment,
    segment_from_dict,
    url_basename,
)

__all__ = [
    "CombineWithBackgroundSegment",
    "LockKey",
    "LockRecord",
    "Manifest",
    "ProgramIdentity",
    "Recording",
    "Segment",
    "SegmentPlan",
    "SilenceSegment",
    "SingleSegment",
    "VARIANT_ROLES",
    "merge_manifest_view",
    "new_request_id",
    "segment_from_dict",
    "url_basename",
    "utcnow",
]
