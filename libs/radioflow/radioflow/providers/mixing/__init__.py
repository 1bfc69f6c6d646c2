"""Mixing engine implementations."""

from radioflow.config import Settings
from radioflow.providers.mixing.base import MixingEngine
from radioflow.providers.mixing.fake import MixOperation, RecordingMixingEngine
from radioflow.providers.mixing.ffmpeg import FFmpegMixingEngine


def get_mixing_engine(settings: Settings) -> MixingEngine:
    cfg = settings.audio
    return FFmpegMixingEngine(
        cfg.ffmpeg_bin,
        sample_rate=cfg.sample_rate,
        channels=cfg.channels,
        bitrate=cfg.bitrate,
        background_volume=cfg.background_volume,
        timeout_s=cfg.timeout_s,
    )


__all__ = [
    "FFmpegMixingEngine",
    "MixOperation",
    "MixingEngine",
    "RecordingMixingEngine",
    "get_mixing_engine",
]
