"""Download every asset referenced by a segment plan into a scratch directory."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from radioflow.config import Settings
from radioflow.exceptions import FetchFailedError
from radioflow.models.segment import (
    CombineWithBackgroundSegment,
    Segment,
    SegmentPlan,
    SilenceSegment,
    SingleSegment,
    url_basename,
)
from radioflow.providers.mixing.base import MixingEngine

logger = logging.getLogger(__name__)

_SYSTEM_PATH_MARKERS = ("/jingles/", "/other/", "/questions/")
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_QUESTION_PROMPT_NAME = re.compile(r"-QID\d+\.[A-Za-z0-9]+$")


def is_system_asset(url: str) -> bool:
    """System assets may be replaced by silence; user recordings may not."""
    path = str(url or "").split("?", 1)[0]
    if any(marker in path for marker in _SYSTEM_PATH_MARKERS):
        return True
    return bool(_QUESTION_PROMPT_NAME.search(url_basename(path)))


@dataclass
class MaterializedSegment:
    """A plan segment with its assets on local disk.

    ``paths`` holds the single file for ``single``/``silence`` segments and
    the ordered answer files for ``combine_with_background``.
    """

    index: int
    segment: Segment
    paths: list[str]
    background_path: str | None = None
    substituted: list[str] = field(default_factory=list)


def _log_retry(url: str) -> Callable[[RetryCallState], None]:
    def _log(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        wait_s = state.next_action.sleep if state.next_action else None
        logger.warning(
            "download retrying (url=%s, attempt=%s, wait_s=%s, error=%s)",
            url,
            state.attempt_number,
            wait_s,
            exc,
        )

    return _log


class RemoteFetcher:
    def __init__(
        self,
        mixer: MixingEngine,
        *,
        timeout_s: float = 30.0,
        max_attempts: int = 3,
        concurrency: int = 4,
        silence_background_s: float = 30.0,
        silence_question_s: float = 5.0,
        silence_default_s: float = 3.0,
        client: httpx.AsyncClient | None = None,
        retry_wait: Any | None = None,
    ) -> None:
        self.mixer = mixer
        self.timeout_s = float(timeout_s)
        self.max_attempts = max(1, int(max_attempts))
        self.concurrency = max(1, int(concurrency))
        self.silence_background_s = float(silence_background_s)
        self.silence_question_s = float(silence_question_s)
        self.silence_default_s = float(silence_default_s)
        self._client = client
        self._retry_wait = retry_wait if retry_wait is not None else wait_exponential(min=1, max=8)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        mixer: MixingEngine,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> "RemoteFetcher":
        return cls(
            mixer,
            timeout_s=settings.fetch.timeout_s,
            max_attempts=settings.fetch.max_attempts,
            concurrency=settings.fetch.concurrency,
            silence_background_s=settings.audio.silence_background_s,
            silence_question_s=settings.audio.silence_question_s,
            silence_default_s=settings.audio.silence_default_s,
            client=client,
        )

    def silence_duration_for(self, url: str) -> float:
        name = url_basename(url)
        if "background" in name:
            return self.silence_background_s
        if "-QID" in name:
            return self.silence_question_s
        return self.silence_default_s

    async def _download_once(self, client: httpx.AsyncClient, url: str, dest: Path) -> int:
        async with client.stream("GET", url) as resp:
            if not resp.is_success:
                return int(resp.status_code)
            with open(dest, "wb") as f:
                async for chunk in resp.aiter_bytes():
                    f.write(chunk)
            return int(resp.status_code)

    async def _download(self, client: httpx.AsyncClient, url: str, dest: Path) -> int:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=_log_retry(url),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._download_once(client, url, dest)
        except httpx.TransportError as exc:
            raise FetchFailedError(url, f"download failed: {exc}") from exc
        raise FetchFailedError(url, "download failed")  # pragma: no cover

    async def fetch_asset(self, client: httpx.AsyncClient, url: str, dest: Path) -> tuple[str, bool]:
        """Download one asset; returns ``(path, substituted_with_silence)``."""
        status = await self._download(client, url, dest)
        if 200 <= status < 300:
            logger.debug("downloaded (url=%s, path=%s)", url, dest.name)
            return str(dest), False

        if not is_system_asset(url):
            logger.error("user recording missing (url=%s, status=%s)", url, status)
            raise FetchFailedError(url, f"HTTP {status}", status_code=status)

        duration = self.silence_duration_for(url)
        silence_path = dest.with_name(f"{dest.stem}.silence.mp3")
        logger.warning(
            "system asset missing, using silence (url=%s, status=%s, duration_s=%s)",
            url,
            status,
            duration,
        )
        await self.mixer.synthesize_silence(duration, str(silence_path))
        return str(silence_path), True

    async def materialize(self, plan: SegmentPlan, scratch_dir: str | Path) -> list[MaterializedSegment]:
        scratch = Path(scratch_dir)
        scratch.mkdir(parents=True, exist_ok=True)
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_s),
            follow_redirects=True,
        )
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(url: str, dest: Path) -> tuple[str, bool]:
            async with semaphore:
                return await self.fetch_asset(client, url, dest)

        def _dest(index: int, sub: int, url: str) -> Path:
            name = _UNSAFE_CHARS.sub("_", url_basename(url)) or "asset"
            return scratch / f"{index:03d}-{sub:02d}-{name}"

        # One task per url, in plan order; silence segments have no urls.
        tasks: list[asyncio.Task[tuple[str, bool]]] = []
        for i, seg in enumerate(plan.segments):
            for j, url in enumerate(seg.urls):
                tasks.append(asyncio.create_task(_bounded(url, _dest(i, j, url))))

        try:
            try:
                fetched = await asyncio.gather(*tasks)
            except BaseException:
                for t in tasks:
                    t.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        finally:
            if owns_client:
                await client.aclose()

        out: list[MaterializedSegment] = []
        cursor = 0
        for i, seg in enumerate(plan.segments):
            if isinstance(seg, SilenceSegment):
                path = str(scratch / f"{i:03d}-silence.mp3")
                await self.mixer.synthesize_silence(seg.duration_s, path)
                out.append(MaterializedSegment(index=i, segment=seg, paths=[path]))
                continue

            results = fetched[cursor : cursor + len(seg.urls)]
            cursor += len(seg.urls)
            substituted = [url for url, (_, sub) in zip(seg.urls, results) if sub]
            paths = [p for p, _ in results]
            if isinstance(seg, CombineWithBackgroundSegment):
                out.append(
                    MaterializedSegment(
                        index=i,
                        segment=seg,
                        paths=paths[:-1],
                        background_path=paths[-1],
                        substituted=substituted,
                    )
                )
            elif isinstance(seg, SingleSegment):
                out.append(MaterializedSegment(index=i, segment=seg, paths=paths, substituted=substituted))

        logger.info(
            "assets materialized (segments=%d, files=%d, substituted=%d)",
            len(out),
            len(fetched),
            sum(len(m.substituted) for m in out),
        )
        return out
