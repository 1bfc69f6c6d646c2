"""FFmpeg process helpers.

Binary resolution prefers the system `ffmpeg` and falls back to the
`imageio-ffmpeg` bundled binary. Commands run through `subprocess.run()` in a
worker thread instead of `asyncio.create_subprocess_exec()`, since some
runtime environments have flaky child watchers that can hang `.communicate()`.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self, max_chars: int = 2000) -> str:
        text = self.stderr.decode(errors="ignore").strip()
        if len(text) <= max_chars:
            return text
        return text[-max_chars:]


def resolve_ffmpeg_bin(ffmpeg_bin: str = "ffmpeg") -> str:
    ffmpeg_bin = (ffmpeg_bin or "ffmpeg").strip()

    if Path(ffmpeg_bin).exists():
        return ffmpeg_bin

    found = shutil.which(ffmpeg_bin)
    if found:
        return found

    try:
        import imageio_ffmpeg

        return str(imageio_ffmpeg.get_ffmpeg_exe())
    except Exception as exc:
        logger.warning("failed to resolve bundled ffmpeg (%s); fallback to %r", exc, ffmpeg_bin)
        return ffmpeg_bin


async def run_command(args: Sequence[str], *, timeout_s: float | None = None) -> CommandResult:
    """Run a command to completion and capture its output.

    `FileNotFoundError` (missing binary) and `subprocess.TimeoutExpired`
    propagate to the caller.
    """

    def _run() -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            timeout=timeout_s,
        )

    cp = await asyncio.to_thread(_run)
    return CommandResult(
        returncode=int(cp.returncode),
        stdout=cp.stdout or b"",
        stderr=cp.stderr or b"",
    )
