"""In-process mixing engine that records calls instead of running ffmpeg."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from radioflow.exceptions import MixingFailedError
from radioflow.providers.mixing.base import MixingEngine


@dataclass
class MixOperation:
    name: str
    inputs: list[str]
    output: str
    duration_s: float | None = None


@dataclass
class RecordingMixingEngine(MixingEngine):
    """Writes placeholder bytes so downstream stages see real files.

    ``assemble_final`` and ``concatenate_with_background`` write the
    concatenated input bytes, so tests can assert on ordering by reading
    the output.
    """

    operations: list[MixOperation] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)

    def _check(self, name: str) -> None:
        if name in self.fail_on:
            raise MixingFailedError(name, "simulated failure", diagnostic="simulated stderr")

    async def concatenate_with_background(
        self,
        answer_paths: Sequence[str],
        background_path: str,
        output_path: str,
    ) -> str:
        self._check("concatenate_with_background")
        inputs = [str(p) for p in answer_paths]
        self.operations.append(
            MixOperation("concatenate_with_background", [*inputs, str(background_path)], str(output_path))
        )
        body = b"".join(Path(p).read_bytes() for p in inputs)
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_bytes(b"[mix]" + body + b"[/mix]")
        return str(output_path)

    async def assemble_final(self, segment_paths: Sequence[str], output_path: str) -> str:
        self._check("assemble_final")
        inputs = [str(p) for p in segment_paths]
        self.operations.append(MixOperation("assemble_final", inputs, str(output_path)))
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_bytes(b"".join(Path(p).read_bytes() for p in inputs))
        return str(output_path)

    async def synthesize_silence(self, duration_s: float, output_path: str) -> str:
        self._check("synthesize_silence")
        self.operations.append(
            MixOperation("synthesize_silence", [], str(output_path), duration_s=float(duration_s))
        )
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_bytes(f"[silence:{float(duration_s):g}]".encode())
        return str(output_path)

    def names(self) -> list[str]:
        return [op.name for op in self.operations]
