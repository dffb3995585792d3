"""Telegram bot client bootstrap.

The bot logs in with a bot token rather than a user session, so there is no
interactive login step; the session file only caches the authorization.
"""

from __future__ import annotations

import logging
import os
from typing import Tuple

from dotenv import load_dotenv
from telethon import TelegramClient

LOGGER = logging.getLogger(__name__)


def _credentials() -> Tuple[int, str, str]:
    load_dotenv()
    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    token = os.getenv("BOT_TOKEN")
    missing = [
        name
        for name, value in (("API_ID", api_id), ("API_HASH", api_hash), ("BOT_TOKEN", token))
        if not value
    ]
    if missing:
        raise RuntimeError(f"Missing {', '.join(missing)} in environment")
    return int(api_id), api_hash, token


def connect_bot() -> Tuple[TelegramClient, str]:
    """Start a bot client; return it with the mention token that addresses it.

    Updates are handled one at a time, so a slow callback delays the next
    message instead of racing it.
    """

    api_id, api_hash, token = _credentials()
    session_name = os.getenv("SESSION_NAME", "switchboard")
    client = TelegramClient(session_name, api_id, api_hash, sequential_updates=True)
    client.start(bot_token=token)

    me = client.loop.run_until_complete(client.get_me())
    username = getattr(me, "username", None)
    mention = f"@{username}" if username else ""
    LOGGER.info("Connected as %s", mention or me.id)
    return client, mention
