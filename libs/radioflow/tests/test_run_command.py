import sys

import pytest

from radioflow.utils.ffmpeg import resolve_ffmpeg_bin, run_command


@pytest.mark.asyncio
async def test_run_command_executes_command() -> None:
    result = await run_command(["bash", "-lc", "echo -n hi"])
    assert result.ok
    assert result.stdout == b"hi"


@pytest.mark.asyncio
async def test_run_command_captures_failure_stderr() -> None:
    result = await run_command(["bash", "-lc", "echo -n boom >&2; exit 3"])
    assert result.returncode == 3
    assert not result.ok
    assert result.stderr_tail() == "boom"


@pytest.mark.asyncio
async def test_run_command_missing_binary_propagates() -> None:
    with pytest.raises(FileNotFoundError):
        await run_command(["definitely-not-a-real-binary-xyz"])


def test_resolve_ffmpeg_bin_keeps_existing_path() -> None:
    assert resolve_ffmpeg_bin(sys.executable) == sys.executable
