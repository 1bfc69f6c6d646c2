from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from radioflow.exceptions import MixingFailedError
from radioflow.providers.mixing import ffmpeg as ffmpeg_mod
from radioflow.providers.mixing.ffmpeg import (
    FFmpegMixingEngine,
    background_mix_filter,
    concat_filter,
)
from radioflow.utils.ffmpeg import CommandResult


class _Recorder:
    def __init__(self, result: CommandResult | None = None, exc: BaseException | None = None) -> None:
        self.calls: list[list[str]] = []
        self.result = result or CommandResult(returncode=0, stdout=b"", stderr=b"")
        self.exc = exc

    async def __call__(self, args, *, timeout_s=None) -> CommandResult:  # noqa: ANN001
        self.calls.append(list(args))
        if self.exc is not None:
            raise self.exc
        return self.result


def _engine() -> FFmpegMixingEngine:
    return FFmpegMixingEngine("/usr/bin/ffmpeg-test", background_volume=0.25, timeout_s=5)


def test_concat_filter_lists_inputs_in_order() -> None:
    assert concat_filter(3, output_label="out") == "[0:a][1:a][2:a]concat=n=3:v=0:a=1[out]"


def test_background_mix_filter_bounds_duration_by_answers() -> None:
    graph = background_mix_filter(2, background_volume=0.25)
    assert graph.startswith("[0:a][1:a]concat=n=2:v=0:a=1[answers]")
    assert "[2:a]aloop=loop=-1:size=2e+09,volume=0.25[background]" in graph
    assert "amix=inputs=2:duration=first" in graph


@pytest.mark.asyncio
async def test_concatenate_with_background_builds_command(monkeypatch, tmp_path: Path) -> None:
    recorder = _Recorder()
    monkeypatch.setattr(ffmpeg_mod, "run_command", recorder)
    out = tmp_path / "mix" / "combined.mp3"

    await _engine().concatenate_with_background(["a.mp3", "b.mp3"], "bg.mp3", str(out))

    (cmd,) = recorder.calls
    inputs = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-i"]
    assert inputs == ["a.mp3", "b.mp3", "bg.mp3"]
    graph = cmd[cmd.index("-filter_complex") + 1]
    assert graph == background_mix_filter(2, background_volume=0.25)
    assert cmd[-1] == str(out)
    assert out.parent.is_dir()


@pytest.mark.asyncio
async def test_assemble_final_encodes_publishable_mp3(monkeypatch, tmp_path: Path) -> None:
    recorder = _Recorder()
    monkeypatch.setattr(ffmpeg_mod, "run_command", recorder)

    await _engine().assemble_final(["0.mp3", "1.mp3", "2.mp3"], str(tmp_path / "final.mp3"))

    (cmd,) = recorder.calls
    assert [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-i"] == ["0.mp3", "1.mp3", "2.mp3"]
    assert cmd[cmd.index("-ar") + 1] == "44100"
    assert cmd[cmd.index("-ac") + 1] == "2"
    assert cmd[cmd.index("-b:a") + 1] == "128k"
    assert cmd[cmd.index("-c:a") + 1] == "libmp3lame"
    assert cmd[cmd.index("-f") + 1] == "mp3"


@pytest.mark.asyncio
async def test_synthesize_silence_uses_anullsrc(monkeypatch, tmp_path: Path) -> None:
    recorder = _Recorder()
    monkeypatch.setattr(ffmpeg_mod, "run_command", recorder)

    await _engine().synthesize_silence(3, str(tmp_path / "s.mp3"))

    (cmd,) = recorder.calls
    assert cmd[cmd.index("-f") + 1] == "lavfi"
    assert cmd[cmd.index("-i") + 1] == "anullsrc=channel_layout=stereo:sample_rate=44100"
    assert cmd[cmd.index("-t") + 1] == "3"


@pytest.mark.asyncio
async def test_nonzero_exit_raises_with_stderr_tail(monkeypatch, tmp_path: Path) -> None:
    recorder = _Recorder(CommandResult(returncode=1, stdout=b"", stderr=b"Invalid data found"))
    monkeypatch.setattr(ffmpeg_mod, "run_command", recorder)

    with pytest.raises(MixingFailedError) as excinfo:
        await _engine().assemble_final(["0.mp3"], str(tmp_path / "final.mp3"))

    assert excinfo.value.operation == "assemble_final"
    assert "Invalid data found" in excinfo.value.diagnostic


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc",
    [FileNotFoundError("ffmpeg"), subprocess.TimeoutExpired(cmd="ffmpeg", timeout=5)],
)
async def test_missing_binary_and_timeout_raise_mixing_failed(monkeypatch, tmp_path: Path, exc) -> None:
    monkeypatch.setattr(ffmpeg_mod, "run_command", _Recorder(exc=exc))

    with pytest.raises(MixingFailedError):
        await _engine().synthesize_silence(1, str(tmp_path / "s.mp3"))


@pytest.mark.asyncio
async def test_empty_inputs_are_rejected(tmp_path: Path) -> None:
    engine = _engine()
    with pytest.raises(MixingFailedError):
        await engine.assemble_final([], str(tmp_path / "final.mp3"))
    with pytest.raises(MixingFailedError):
        await engine.concatenate_with_background([], "bg.mp3", str(tmp_path / "c.mp3"))
    with pytest.raises(MixingFailedError):
        await engine.synthesize_silence(0, str(tmp_path / "s.mp3"))
