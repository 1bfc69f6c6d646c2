"""FFmpeg-based mixing engine."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from radioflow.exceptions import MixingFailedError
from radioflow.providers.mixing.base import MixingEngine
from radioflow.utils.ffmpeg import resolve_ffmpeg_bin, run_command

logger = logging.getLogger(__name__)


def concat_filter(count: int, *, output_label: str) -> str:
    inputs = "".join(f"[{i}:a]" for i in range(count))
    return f"{inputs}concat=n={count}:v=0:a=1[{output_label}]"


def background_mix_filter(answer_count: int, *, background_volume: float) -> str:
    bg = answer_count
    return ";".join(
        [
            concat_filter(answer_count, output_label="answers"),
            f"[{bg}:a]aloop=loop=-1:size=2e+09,volume={background_volume:g}[background]",
            "[answers][background]amix=inputs=2:duration=first:dropout_transition=0[out]",
        ]
    )


class FFmpegMixingEngine(MixingEngine):
    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        *,
        sample_rate: int = 44100,
        channels: int = 2,
        bitrate: str = "128k",
        background_volume: float = 0.25,
        timeout_s: float | None = 300.0,
    ) -> None:
        self.ffmpeg_bin = resolve_ffmpeg_bin(ffmpeg_bin)
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.bitrate = str(bitrate)
        self.background_volume = float(background_volume)
        self.timeout_s = timeout_s

    def _encode_args(self) -> list[str]:
        return [
            "-ar",
            str(self.sample_rate),
            "-ac",
            str(self.channels),
            "-c:a",
            "libmp3lame",
            "-b:a",
            self.bitrate,
            "-f",
            "mp3",
        ]

    async def _run(self, operation: str, args: list[str]) -> None:
        cmd = [self.ffmpeg_bin, "-y", "-hide_banner", "-loglevel", "error", *args]
        logger.debug("ffmpeg start (op=%s, args=%d)", operation, len(cmd))
        try:
            result = await run_command(cmd, timeout_s=self.timeout_s)
        except FileNotFoundError as exc:
            raise MixingFailedError(
                operation,
                f"ffmpeg binary not found: {self.ffmpeg_bin} "
                "(install ffmpeg, install `imageio-ffmpeg`, or set AUDIO_FFMPEG_BIN)",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise MixingFailedError(operation, f"ffmpeg timed out after {self.timeout_s}s") from exc
        if not result.ok:
            diagnostic = result.stderr_tail()
            logger.warning("ffmpeg failed (op=%s, code=%s): %s", operation, result.returncode, diagnostic)
            raise MixingFailedError(
                operation,
                f"ffmpeg exited with code {result.returncode}",
                diagnostic=diagnostic,
            )

    async def concatenate_with_background(
        self,
        answer_paths: Sequence[str],
        background_path: str,
        output_path: str,
    ) -> str:
        answers = [str(p) for p in answer_paths]
        if not answers:
            raise MixingFailedError("concatenate_with_background", "no answers to mix")
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)

        args: list[str] = []
        for path in [*answers, str(background_path)]:
            args += ["-i", path]
        args += [
            "-filter_complex",
            background_mix_filter(len(answers), background_volume=self.background_volume),
            "-map",
            "[out]",
            *self._encode_args(),
            str(output_path),
        ]
        await self._run("concatenate_with_background", args)
        return str(output_path)

    async def assemble_final(self, segment_paths: Sequence[str], output_path: str) -> str:
        segments = [str(p) for p in segment_paths]
        if not segments:
            raise MixingFailedError("assemble_final", "no segments to assemble")
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)

        args: list[str] = []
        for path in segments:
            args += ["-i", path]
        args += [
            "-filter_complex",
            concat_filter(len(segments), output_label="out"),
            "-map",
            "[out]",
            *self._encode_args(),
            str(output_path),
        ]
        await self._run("assemble_final", args)
        return str(output_path)

    async def synthesize_silence(self, duration_s: float, output_path: str) -> str:
        duration = float(duration_s)
        if duration <= 0:
            raise MixingFailedError("synthesize_silence", f"invalid duration: {duration_s!r}")
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        layout = "stereo" if self.channels == 2 else "mono"
        await self._run(
            "synthesize_silence",
            [
                "-f",
                "lavfi",
                "-i",
                f"anullsrc=channel_layout={layout}:sample_rate={self.sample_rate}",
                "-t",
                f"{duration:g}",
                *self._encode_args(),
                str(output_path),
            ],
        )
        return str(output_path)
