"""Application runtime: builds every service once and owns the scheduler."""

from __future__ import annotations

from contextlib import suppress

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler
from loguru import logger

from synapsebot.app.cleanup import FileJanitor
from synapsebot.channels.telegram import TelegramChannel, TelegramConfig, rendered_length
from synapsebot.config.settings import Settings
from synapsebot.core.gate import ProcessingGate
from synapsebot.core.history import HistoryStore
from synapsebot.core.orchestrator import Orchestrator
from synapsebot.integrations.republic_client import RepublicBackend, build_llm
from synapsebot.prompts import SYSTEM_PROMPT
from synapsebot.tools import ToolRegistry, register_builtin_tools
from synapsebot.web import ContentExtractor, WebSearcher

GATE_SWEEP_JOB_ID = "gate-sweep"
FILE_SWEEP_JOB_ID = "file-sweep"


class AppRuntime:
    """Global runtime shared by every conversation."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.history = HistoryStore(settings.history_size)
        self.gate = ProcessingGate(float(settings.processing_timeout_seconds))
        self.janitor = FileJanitor(settings.files_dir, settings.file_max_age_seconds)
        self.extractor = ContentExtractor(
            deadline=settings.extract_deadline_seconds,
            fetch_timeout=settings.fetch_timeout_seconds,
            max_concurrency=settings.max_concurrent_fetches,
        )
        self.searcher = WebSearcher(
            self.extractor,
            search_url=settings.search_url,
            extract_limit=settings.search_extract_limit,
        )
        self.registry = ToolRegistry()
        register_builtin_tools(
            self.registry,
            files_dir=settings.files_dir,
            extractor=self.extractor,
            searcher=self.searcher,
        )
        self.backend = RepublicBackend(
            build_llm(settings),
            tools=self.registry.model_tools(),
            system_prompt=settings.system_prompt or SYSTEM_PROMPT,
            max_tokens=settings.max_tokens,
        )
        self.channel = TelegramChannel(
            TelegramConfig(token=settings.require_bot_token(), allow_from=settings.allow_from)
        )
        self.orchestrator = Orchestrator(
            history=self.history,
            gate=self.gate,
            registry=self.registry,
            backend=self.backend,
            transport=self.channel,
            max_tool_depth=settings.max_tool_depth,
            message_length=rendered_length,
        )
        self.channel.bind(self.orchestrator.handle_message)
        self.scheduler = self._default_scheduler()

    def _default_scheduler(self) -> BaseScheduler:
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self.gate.reap,
            "interval",
            seconds=self.settings.gate_sweep_interval_seconds,
            id=GATE_SWEEP_JOB_ID,
            coalesce=True,
            max_instances=1,
        )
        scheduler.add_job(
            self.janitor.sweep,
            "interval",
            seconds=self.settings.file_sweep_interval_seconds,
            id=FILE_SWEEP_JOB_ID,
            coalesce=True,
            max_instances=1,
        )
        return scheduler

    async def __aenter__(self) -> AppRuntime:
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info("runtime.start model={} tools={}", self.settings.model, len(self.registry.descriptors()))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.scheduler.running:
            with suppress(Exception):
                self.scheduler.shutdown(wait=False)
        await self.channel.stop()
        await self.orchestrator.drain()
        await self.extractor.aclose()
        logger.info("runtime.stopped")

    async def serve(self) -> None:
        """Run the Telegram channel until it is stopped or cancelled."""
        async with self:
            await self.channel.start()
