from __future__ import annotations

from pathlib import Path

import pytest
from tenacity import wait_none

from radioflow.exceptions import FetchFailedError
from radioflow.models.segment import (
    CombineWithBackgroundSegment,
    SegmentPlan,
    SilenceSegment,
    SingleSegment,
)
from radioflow.pipeline.fetcher import RemoteFetcher, is_system_asset
from radioflow.providers.mixing.fake import RecordingMixingEngine

from radio_testkit import CDN, AssetServer, kids_file


def _fetcher(mixer: RecordingMixingEngine, server: AssetServer, **kwargs) -> RemoteFetcher:
    return RemoteFetcher(mixer, client=server.client(), retry_wait=wait_none(), **kwargs)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        (f"{CDN}/jingles/intro-jingle.mp3", True),
        (f"{CDN}/spookyland/other/spookyland-intro-educators.mp3", True),
        (f"{CDN}/spookyland/questions/spookyland-QID3.mp3", True),
        ("https://x.test/spookyland-QID3.mp3", True),
        ("https://x.test/loop-background.mp3", False),
        (f"https://store.test/en/32/{kids_file(1, 1)}", False),
        (f"https://store.test/en/32/{kids_file(1, 1, world='background')}", False),
        ("https://store.test/en/32/kids-world_x-lmid_1-QID2-notes.mp3", False),
    ],
)
def test_is_system_asset(url: str, expected: bool) -> None:
    assert is_system_asset(url) is expected


@pytest.mark.asyncio
async def test_materialize_preserves_plan_order_and_indexes(tmp_path: Path, asset_server: AssetServer) -> None:
    intro = asset_server.add(f"{CDN}/jingles/intro-jingle.mp3", b"intro")
    answer_a = asset_server.add(f"https://store.test/{kids_file(1, 1)}", b"a")
    answer_b = asset_server.add(f"https://store.test/{kids_file(1, 2)}", b"b")
    bg = asset_server.add(f"{CDN}/spookyland/other/spookyland-background.mp3", b"bg")
    plan = SegmentPlan(
        segments=[
            SingleSegment(intro),
            SilenceSegment(1.5),
            CombineWithBackgroundSegment(answer_urls=(answer_a, answer_b), background_url=bg),
        ]
    )
    mixer = RecordingMixingEngine()

    out = await _fetcher(mixer, asset_server, concurrency=2).materialize(plan, tmp_path / "scratch")

    assert [m.index for m in out] == [0, 1, 2]
    assert Path(out[0].paths[0]).read_bytes() == b"intro"
    assert Path(out[1].paths[0]).read_bytes() == b"[silence:1.5]"
    assert [Path(p).read_bytes() for p in out[2].paths] == [b"a", b"b"]
    assert out[2].background_path is not None
    assert Path(out[2].background_path).read_bytes() == b"bg"
    assert all(not m.substituted for m in out)


@pytest.mark.asyncio
async def test_missing_system_assets_become_silence(tmp_path: Path, asset_server: AssetServer) -> None:
    answer = asset_server.add(f"https://store.test/{kids_file(1, 1)}", b"a")
    plan = SegmentPlan(
        segments=[
            SingleSegment(f"{CDN}/jingles/intro-jingle.mp3"),
            SingleSegment(f"{CDN}/spookyland/questions/spookyland-QID1.mp3"),
            CombineWithBackgroundSegment(
                answer_urls=(answer,),
                background_url=f"{CDN}/spookyland/other/spookyland-background.mp3",
            ),
        ]
    )
    mixer = RecordingMixingEngine()

    out = await _fetcher(mixer, asset_server).materialize(plan, tmp_path)

    durations = sorted(op.duration_s for op in mixer.operations if op.name == "synthesize_silence")
    assert durations == [3.0, 5.0, 30.0]
    assert out[0].substituted == [f"{CDN}/jingles/intro-jingle.mp3"]
    assert Path(out[1].paths[0]).read_bytes() == b"[silence:5]"
    assert out[2].background_path is not None
    assert Path(out[2].background_path).read_bytes() == b"[silence:30]"


@pytest.mark.asyncio
async def test_missing_user_recording_is_fatal(tmp_path: Path, asset_server: AssetServer) -> None:
    bg = asset_server.add(f"{CDN}/spookyland/other/spookyland-background.mp3")
    missing = f"https://store.test/{kids_file(1, 1)}"
    plan = SegmentPlan(segments=[CombineWithBackgroundSegment(answer_urls=(missing,), background_url=bg)])
    mixer = RecordingMixingEngine()

    with pytest.raises(FetchFailedError) as excinfo:
        await _fetcher(mixer, asset_server).materialize(plan, tmp_path)

    assert excinfo.value.url == missing
    assert excinfo.value.status_code == 404
    assert "synthesize_silence" not in mixer.names()


@pytest.mark.asyncio
async def test_missing_user_recording_named_like_background_is_fatal(
    tmp_path: Path, asset_server: AssetServer
) -> None:
    bg = asset_server.add(f"{CDN}/background/other/background-background.mp3")
    missing = f"https://store.test/{kids_file(1, 1, world='background')}"
    plan = SegmentPlan(segments=[CombineWithBackgroundSegment(answer_urls=(missing,), background_url=bg)])
    mixer = RecordingMixingEngine()

    with pytest.raises(FetchFailedError):
        await _fetcher(mixer, asset_server).materialize(plan, tmp_path)

    assert mixer.operations == []


@pytest.mark.asyncio
async def test_transport_errors_are_retried(tmp_path: Path, asset_server: AssetServer) -> None:
    url = asset_server.add(f"https://store.test/{kids_file(1, 1)}", b"ok")
    asset_server.fail_transport(url, times=2)
    plan = SegmentPlan(segments=[SingleSegment(url)])

    out = await _fetcher(RecordingMixingEngine(), asset_server, max_attempts=3).materialize(plan, tmp_path)

    assert Path(out[0].paths[0]).read_bytes() == b"ok"
    assert asset_server.requests.count(url) == 3


@pytest.mark.asyncio
async def test_transport_errors_exhaust_attempts(tmp_path: Path, asset_server: AssetServer) -> None:
    url = asset_server.add(f"https://store.test/{kids_file(1, 1)}", b"ok")
    asset_server.fail_transport(url, times=5)
    plan = SegmentPlan(segments=[SingleSegment(url)])

    with pytest.raises(FetchFailedError):
        await _fetcher(RecordingMixingEngine(), asset_server, max_attempts=2).materialize(plan, tmp_path)
    assert asset_server.requests.count(url) == 2
