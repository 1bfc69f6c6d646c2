"""Mixing engine abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence


class MixingEngine(ABC):
    @abstractmethod
    async def concatenate_with_background(
        self,
        answer_paths: Sequence[str],
        background_path: str,
        output_path: str,
    ) -> str:
        """Concatenate answers in order and mix a looped background under them.

        The answers bound the duration of the output.
        """

    @abstractmethod
    async def assemble_final(self, segment_paths: Sequence[str], output_path: str) -> str:
        """Concatenate rendered segments in order into the publishable track."""

    @abstractmethod
    async def synthesize_silence(self, duration_s: float, output_path: str) -> str:
        """Write a silent clip of the given duration."""

    async def close(self) -> None:  # pragma: no cover
        return None
