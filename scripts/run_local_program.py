from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from radioflow.config import Settings
from radioflow.exceptions import LockContentionError, RadioFlowError
from radioflow.models.identity import ProgramIdentity
from radioflow.pipeline import GenerationRequest, ProgramGenerator
from radioflow.providers.mixing import get_mixing_engine
from radioflow.storage import get_object_store
from radioflow.utils.logging_setup import setup_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate one radio program from a list of recordings.")
    parser.add_argument("--program-type", required=True, help="Program type (world), e.g. spookyland")
    parser.add_argument("--program-identity", required=True, help="Program identity (lmid), e.g. 32")
    parser.add_argument("--variant", default="kids", help="Program variant (kids/parent)")
    parser.add_argument("--language", default="", help="Language namespace for storage keys")
    parser.add_argument(
        "--recordings",
        required=True,
        help="JSON file with a list of recordings (urls or {filename, url} objects)",
    )
    parser.add_argument("--segments", default=None, help="JSON file with a pre-resolved segment plan")
    return parser.parse_args()


def _load_json(path: str) -> object:
    p = Path(path)
    if not p.exists():
        raise SystemExit(f"File not found: {p}")
    return json.loads(p.read_text(encoding="utf-8"))


async def _run() -> int:
    args = _parse_args()
    settings = Settings()
    setup_logging(settings)

    identity = ProgramIdentity(args.program_type, args.program_identity, args.variant, args.language)
    payload: dict = {"identity": identity.to_dict(), "recordings": _load_json(args.recordings)}
    if args.segments:
        payload["segments"] = _load_json(args.segments)

    store = get_object_store(settings)
    generator = ProgramGenerator(settings, store, get_mixing_engine(settings))
    try:
        result = await generator.generate(GenerationRequest.from_dict(payload))
    except LockContentionError as exc:
        print(f"key={exc.key} status=in_progress retry_after_s={exc.retry_after_s}")
        return 2
    except RadioFlowError as exc:
        print(f"key={identity.lock_key} status=failed error_code={exc.error_code.value} error={exc}")
        return 1

    print(
        f"key={identity.lock_key} status=ok url={result.url} "
        f"recordings={result.manifest.recording_count} manifest_published={result.manifest_published}"
    )
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
