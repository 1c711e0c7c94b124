"""Interactive login for the agent's Telegram account.

Run once before ``squabble run`` to create the session file. Supports a bot
token (BOT_TOKEN), QR login and phone-code login with optional 2FA.
"""

from __future__ import annotations

import asyncio
import logging
import os
from getpass import getpass

import qrcode
from telethon import TelegramClient, errors

from client import build_client

LOGGER = logging.getLogger(__name__)

LOGIN_METHODS = {"1": "qr", "2": "phone", "3": "bot"}


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    password = os.getenv("2FA")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    _print_qr(qr.url)
    try:
        await qr.wait(timeout=120)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    try:
        await client.sign_in(phone=phone, code=code)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


async def _authorize_with_bot(client: TelegramClient) -> None:
    token = os.getenv("BOT_TOKEN") or getpass("Bot token: ")
    await client.sign_in(bot_token=token.strip())


def _pick_login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in LOGIN_METHODS.values():
        return method
    if os.getenv("BOT_TOKEN"):
        return "bot"
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Bot token")
        print("[4] Exit")
        choice = input("squabble > ").strip()
        if choice == "4":
            raise SystemExit(0)
        if choice in LOGIN_METHODS:
            return LOGIN_METHODS[choice]
        print("Invalid option. Please choose 1, 2, 3 or 4.")


async def authorize(client: TelegramClient) -> None:
    """Make sure the connected client is signed in, prompting if needed."""

    if await client.is_user_authorized():
        return

    method = _pick_login_method()
    LOGGER.info("Authorizing with %s login", method)
    if method == "bot":
        await _authorize_with_bot(client)
    elif method == "phone":
        await _authorize_with_phone(client)
    else:
        await _authorize_with_qr(client)


async def main() -> None:
    client = build_client()
    await client.connect()
    try:
        await authorize(client)
        me = await client.get_me()
        print(f"Logged in as: {me.username or me.first_name} (id={me.id})")
    finally:
        await client.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
