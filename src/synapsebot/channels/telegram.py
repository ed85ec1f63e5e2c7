"""Telegram channel adapter."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeAlias

from loguru import logger
from telegram import Update
from telegram.constants import ParseMode
from telegram.error import BadRequest, TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters
from telegramify_markdown import markdownify as md

from synapsebot.prompts import HELP_TEXT, INVALID_COMMAND_TEXT, PRIVACY_TEXT, WELCOME_TEXT

LOADING_TEXT = "⏳"
TOO_LONG_TEXT = "Sorry, the response was too long for Telegram. Please try again."
FORMAT_ERROR_TEXT = "Sorry, I encountered an error while formatting the message. Please try again."

MessageHandlerFunc: TypeAlias = Callable[[int, str, int | None], Awaitable[None]]


def render(text: str) -> str:
    """Convert model Markdown into Telegram MarkdownV2."""
    return md(text)


def rendered_length(text: str) -> int:
    """Size of `text` as Telegram receives it."""
    return len(render(text))


@dataclass(frozen=True)
class TelegramConfig:
    """Telegram adapter config."""

    token: str
    allow_from: set[str] = field(default_factory=set)


class TelegramChannel:
    """Telegram adapter using long polling mode; also the transport of the orchestration loop."""

    name = "telegram"

    def __init__(self, config: TelegramConfig) -> None:
        self._config = config
        self._app: Application | None = None
        self._on_message: MessageHandlerFunc | None = None
        self._stopped = asyncio.Event()

    def bind(self, on_message: MessageHandlerFunc) -> None:
        self._on_message = on_message

    @property
    def bot(self):  # noqa: ANN201
        if self._app is None:
            raise RuntimeError("telegram channel is not started")
        return self._app.bot

    def build(self) -> Application:
        if not self._config.token:
            raise RuntimeError("telegram token is empty")
        app = Application.builder().token(self._config.token).build()
        app.add_handler(CommandHandler("start", self._on_start))
        app.add_handler(CommandHandler("help", self._on_help))
        app.add_handler(CommandHandler("privacy", self._on_privacy))
        app.add_handler(MessageHandler(filters.COMMAND, self._on_unknown_command))
        app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._on_text, block=False))
        self._app = app
        return app

    async def start(self) -> None:
        app = self._app or self.build()
        logger.info("telegram.channel.start allow_from_count={}", len(self._config.allow_from))
        await app.initialize()
        await app.start()
        updater = app.updater
        if updater is None:
            return
        await updater.start_polling(drop_pending_updates=True, allowed_updates=["message"])
        logger.info("telegram.channel.polling")
        await self._stopped.wait()

    async def stop(self) -> None:
        self._stopped.set()
        if self._app is None:
            return
        updater = self._app.updater
        if updater is not None and updater.running:
            await updater.stop()
        if self._app.running:
            await self._app.stop()
        await self._app.shutdown()
        self._app = None
        logger.info("telegram.channel.stopped")

    # Transport

    async def send_message(self, chat_id: int, text: str) -> int | None:
        try:
            message = await self.bot.send_message(chat_id=chat_id, text=render(text), parse_mode=ParseMode.MARKDOWN_V2)
        except BadRequest as exc:
            logger.warning("telegram.send.error chat_id={} error={}", chat_id, exc.message)
            if _is_too_long(exc):
                message = await self.bot.send_message(chat_id=chat_id, text=TOO_LONG_TEXT)
            elif _is_parse_error(exc):
                try:
                    message = await self.bot.send_message(chat_id=chat_id, text=text)
                except BadRequest as plain_exc:
                    if not _is_too_long(plain_exc):
                        raise
                    message = await self.bot.send_message(chat_id=chat_id, text=TOO_LONG_TEXT)
            else:
                raise
        return message.message_id

    async def send_loading_message(self, chat_id: int) -> int | None:
        try:
            return await self.send_message(chat_id, LOADING_TEXT)
        except TelegramError:
            logger.exception("telegram.loading.error chat_id={}", chat_id)
            return None

    async def update_message(self, chat_id: int, message_id: int, text: str) -> None:
        try:
            await self._edit(chat_id, message_id, render(text), parse_mode=ParseMode.MARKDOWN_V2)
        except BadRequest as exc:
            logger.warning("telegram.update.error chat_id={} error={}", chat_id, exc.message)
            if _is_not_modified(exc):
                return
            if _is_too_long(exc):
                await self._edit(chat_id, message_id, TOO_LONG_TEXT)
            elif _is_parse_error(exc):
                try:
                    await self._edit(chat_id, message_id, text)
                except BadRequest:
                    await self._edit(chat_id, message_id, FORMAT_ERROR_TEXT)
            else:
                await self._edit(chat_id, message_id, f"Error: {exc.message}")

    async def send_file_with_progress(self, chat_id: int, path: Path) -> None:
        progress_id = await self.send_message(chat_id, "Preparing your file...")
        if progress_id is not None:
            await self.update_message(chat_id, progress_id, "Uploading file...")

        try:
            with path.open("rb") as handle:
                await self.bot.send_document(chat_id=chat_id, document=handle, filename=path.name)
        except (OSError, TelegramError):
            if progress_id is not None:
                await self.update_message(chat_id, progress_id, "Error sending file!")
            raise

        if progress_id is not None:
            try:
                await self.bot.delete_message(chat_id=chat_id, message_id=progress_id)
            except TelegramError:
                logger.warning("telegram.progress.delete_failed chat_id={}", chat_id)

    async def _edit(self, chat_id: int, message_id: int, text: str, *, parse_mode: str | None = None) -> None:
        await self.bot.edit_message_text(text=text, chat_id=chat_id, message_id=message_id, parse_mode=parse_mode)

    # Inbound

    async def _on_start(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_chat is None:
            return
        await self.send_message(update.effective_chat.id, WELCOME_TEXT)

    async def _on_help(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_chat is None:
            return
        await self.send_message(update.effective_chat.id, HELP_TEXT)

    async def _on_privacy(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_chat is None:
            return
        await self.send_message(update.effective_chat.id, PRIVACY_TEXT)

    async def _on_unknown_command(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_chat is None:
            return
        await self.send_message(update.effective_chat.id, INVALID_COMMAND_TEXT)

    async def _on_text(self, update: Update, _context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.message is None or update.effective_user is None:
            return
        user = update.effective_user
        sender_tokens = {str(user.id)}
        if user.username:
            sender_tokens.add(user.username)
        if self._config.allow_from and sender_tokens.isdisjoint(self._config.allow_from):
            await update.message.reply_text("Access denied.")
            return

        chat_id = update.message.chat_id
        text = update.message.text or ""
        logger.info(
            "telegram.channel.inbound chat_id={} sender_id={} username={} content={}",
            chat_id,
            user.id,
            user.username or "",
            text[:100],
        )
        if self._on_message is None:
            logger.warning("telegram.channel.unbound chat_id={}", chat_id)
            return

        status_id = await self.send_loading_message(chat_id)
        await self._on_message(chat_id, text, status_id)


def _is_too_long(exc: BadRequest) -> bool:
    return "too long" in exc.message.lower()


def _is_parse_error(exc: BadRequest) -> bool:
    return "parse entities" in exc.message.lower()


def _is_not_modified(exc: BadRequest) -> bool:
    return "not modified" in exc.message.lower()
