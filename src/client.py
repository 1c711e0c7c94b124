"""Telegram client factory for the squabble agent.

We explicitly manage the client's lifecycle (connect/run_until_disconnected)
so it is obvious when the session is created and when it ends.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient


def build_client() -> TelegramClient:
    """Create a Telethon client from environment variables.

    API_ID/API_HASH come from .env via python-dotenv. The session name
    defaults to "squabble" which creates a local squabble.session file.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "squabble")

    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client (session=%s)", session_name)

    # Handlers run concurrently; the dispatcher serializes per sender.
    return TelegramClient(
        session_name,
        int(api_id),
        api_hash,
        sequential_updates=False,
        device_model="squabble-agent",
        app_version=os.getenv("AGENT_VERSION", "0.1.0"),
    )
