"""Program generation service backed by object storage and ffmpeg."""

from __future__ import annotations

import logging

import httpx

from radioflow.config import Settings
from radioflow.lock.generation_lock import GenerationLock, GenerationStatus
from radioflow.models.identity import ProgramIdentity
from radioflow.models.manifest import Manifest, merge_manifest_view
from radioflow.pipeline.fetcher import RemoteFetcher
from radioflow.pipeline.orchestrator import (
    GenerationRequest,
    GenerationResult,
    ProgramGenerator,
    program_needs_regeneration,
)
from radioflow.pipeline.publisher import Publisher
from radioflow.pipeline.resolver import recording_filter
from radioflow.providers.mixing.base import MixingEngine
from radioflow.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

VIEW_VARIANTS = ("kids", "parent")


class ProgramService:
    def __init__(
        self,
        settings: Settings,
        store: ObjectStore,
        mixer: MixingEngine,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.lock = GenerationLock.from_settings(settings, store)
        self.publisher = Publisher(store)
        self.generator = ProgramGenerator(
            settings,
            store,
            mixer,
            fetcher=RemoteFetcher.from_settings(settings, mixer, client=http_client),
            lock=self.lock,
            publisher=self.publisher,
        )

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        return await self.generator.generate(request)

    async def status(self, identity: ProgramIdentity) -> GenerationStatus:
        return await self.lock.generation_status(identity.lock_key)

    async def manifest_view(
        self,
        program_type: str,
        program_identity: str,
        language: str = "",
        *,
        recordings: list[str] | None = None,
    ) -> dict:
        """Combined read model of every variant's last manifest."""
        view: dict = {"program_type": program_type, "program_identity": program_identity}
        manifests: dict[str, Manifest | None] = {}
        for variant in VIEW_VARIANTS:
            identity = ProgramIdentity(program_type, program_identity, variant, language)
            manifest = await self.publisher.load_manifest(identity)
            manifests[variant] = manifest
            if manifest is not None:
                view = merge_manifest_view(view, manifest)

        if recordings is not None:
            for variant in VIEW_VARIANTS:
                identity = ProgramIdentity(program_type, program_identity, variant, language)
                view[f"{variant}_needs_new_program"] = program_needs_regeneration(
                    recordings, manifests[variant], recording_filter(identity)
                )
        logger.info(
            "manifest view (program_type=%s, program_identity=%s, variants=%s)",
            program_type,
            program_identity,
            [v for v, m in manifests.items() if m is not None],
        )
        return view
