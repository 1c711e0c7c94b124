"""Application entry point for the squabble agent."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

import uvicorn
from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.admin_api import create_admin_app
from adapters.game_server import GameServerClient
from adapters.telegram_mapper import build_inbound_message
from adapters.telegram_transport import TelegramTransport, dialog_kind, dialog_title
from client import build_client
from core.config import DispatchConfig, ExecutorConfig, SessionConfig, TriggerConfig
from core.dispatcher import MessageDispatcher
from core.executor import ActionExecutor
from core.interpreter import Interpreter, OracleInterpreter, RuleBasedInterpreter
from core.models import ConversationKind
from core.sessions import SessionStore
from core.triggers import TriggerClassifier
from get_session import authorize

NAME = "SQUABBLE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/squabble.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"{name} is required in the environment")
    return value


def _build_interpreter() -> tuple[Interpreter, Optional[Any]]:
    """Return the configured interpreter and the oracle to close on shutdown."""

    if settings.INTERPRETER_STRATEGY == "rules":
        return RuleBasedInterpreter(settings.TRIGGERS), None
    if settings.INTERPRETER_STRATEGY == "oracle":
        from adapters.openai_oracle import OpenAIOracle

        oracle = OpenAIOracle(
            api_key=_require_env("OPENAI_API_KEY"),
            model=settings.ORACLE_MODEL,
            timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
        )
        return OracleInterpreter(oracle, settings.TRIGGERS), oracle
    raise RuntimeError("interpreter.strategy must be 'rules' or 'oracle'")


def _run() -> None:
    _print_banner()
    load_dotenv()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting squabble agent")

    if settings.UNRECOGNIZED_POLICY not in {"fallback", "silent"}:
        raise RuntimeError("replies.unrecognized must be 'fallback' or 'silent'")

    squabble_url = _require_env("SQUABBLE_URL")
    game_server = GameServerClient(
        base_url=squabble_url,
        agent_secret=_require_env("AGENT_SECRET"),
        timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
    )
    interpreter, oracle = _build_interpreter()
    logger.info("Selected interpreter strategy - %s", settings.INTERPRETER_STRATEGY)

    client = build_client()
    client.loop.run_until_complete(client.connect())
    client.loop.run_until_complete(authorize(client))

    transport = TelegramTransport(client)
    trigger_config = TriggerConfig(
        triggers=settings.TRIGGERS,
        bot_mentions=settings.BOT_MENTIONS,
        history_window=settings.HISTORY_WINDOW,
    )
    dispatcher = MessageDispatcher(
        transport=transport,
        classifier=TriggerClassifier(trigger_config),
        interpreter=interpreter,
        executor=ActionExecutor(
            game_server,
            transport,
            ExecutorConfig(
                game_url_base=squabble_url,
                minimum_buy_in=settings.MINIMUM_BUY_IN,
                unrecognized_policy=settings.UNRECOGNIZED_POLICY,
            ),
        ),
        sessions=SessionStore(
            SessionConfig(
                ttl_seconds=settings.SESSION_TTL_SECONDS,
                max_entries=settings.SESSION_MAX_ENTRIES,
                history_turns=settings.SESSION_HISTORY_TURNS,
            )
        ),
        config=DispatchConfig(dm_intro=settings.DM_INTRO, welcome=settings.WELCOME),
        history_window=settings.HISTORY_WINDOW,
    )
    agent_id = client.loop.run_until_complete(dispatcher.agent_id())
    logger.info("Agent id: %s", agent_id)

    # All filtering happens in the dispatcher.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            await dispatcher.handle(build_inbound_message(event.message))
        except Exception:
            logger.exception("Error while processing message")

    @client.on(events.ChatAction())
    async def on_chat_action(event) -> None:
        try:
            if not (event.user_added or event.user_joined):
                return
            if int(agent_id) not in (event.user_ids or []):
                return
            await dispatcher.welcome(str(event.chat_id))
        except Exception:
            logger.exception("Error while handling chat action")

    server_task: Optional[asyncio.Task] = None
    if settings.API_ENABLED:
        admin_app = create_admin_app(transport, os.getenv("RECEIVE_AGENT_SECRET", ""))
        server = uvicorn.Server(
            uvicorn.Config(
                admin_app,
                host=settings.API_HOST,
                port=settings.API_PORT,
                log_level="warning",
            )
        )
        server_task = client.loop.create_task(server.serve())
        logger.info("Admin API listening on %s:%s", settings.API_HOST, settings.API_PORT)

    logger.info("Client connected. Listening for incoming messages...")
    try:
        client.run_until_disconnected()
    finally:
        if server_task is not None:
            server.should_exit = True
            client.loop.run_until_complete(server_task)
        client.loop.run_until_complete(game_server.close())
        if oracle is not None:
            client.loop.run_until_complete(oracle.close())
        logger.info("Squabble agent stopped")


async def _list_groups(client) -> None:
    dialogs = []
    async for dialog in client.iter_dialogs():
        if dialog_kind(dialog) != ConversationKind.GROUP:
            continue
        dialogs.append(dialog)

    if not dialogs:
        print("The agent is not in any group yet.")
        return

    for index, dialog in enumerate(dialogs, start=1):
        print(f"{index}. {dialog_title(dialog)} | conversationId={dialog.id}")


def _discover() -> None:
    _print_banner()
    client = build_client()

    async def _run_discover() -> None:
        await client.connect()
        if not await client.is_user_authorized():
            print("Authorization required. Starting login...")
            await authorize(client)
        await _list_groups(client)
        await client.disconnect()

    client.loop.run_until_complete(_run_discover())


def _login() -> None:
    _print_banner()
    from get_session import main as login_main

    asyncio.run(login_main())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="squabble")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the agent")
    subparsers.add_parser("login", help="Create or refresh the Telegram session")
    subparsers.add_parser(
        "discover",
        help="Lists the groups the agent is in, with their conversation ids.",
    )

    args = parser.parse_args(argv)
    if args.command == "login":
        _login()
        return
    if args.command == "discover":
        _discover()
        return
    _run()


if __name__ == "__main__":
    main()
