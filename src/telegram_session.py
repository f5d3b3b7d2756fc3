"""Telegram session handling for riftwatch.

The watcher uses a user session so Saved Messages can receive summaries and
chat commands. Credentials come from .env; the session itself is stored in a
local ``<SESSION_NAME>.session`` file created on first login.
"""

from __future__ import annotations

import logging
import os
from getpass import getpass

import qrcode
from dotenv import load_dotenv
from telethon import TelegramClient, errors

LOGGER = logging.getLogger(__name__)

LOGIN_TIMEOUT_SECONDS = 120


def build_client() -> TelegramClient:
    """Create a Telethon client from API_ID/API_HASH/SESSION_NAME."""

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "riftwatch")

    # Fail fast on missing credentials to avoid an ambiguous login prompt.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    LOGGER.info("Initializing Telegram client (session=%s)", session_name)
    return TelegramClient(session_name, int(api_id), api_hash)


def _second_factor() -> str:
    return os.getenv("2FA") or getpass("2FA password: ")


async def _login_with_qr(client: TelegramClient) -> None:
    login = await client.qr_login()
    qr = qrcode.QRCode(border=1)
    qr.add_data(login.url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)
    await login.wait(timeout=LOGIN_TIMEOUT_SECONDS)


async def _login_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    await client.sign_in(phone=phone, code=input("Login code: ").strip())


def _login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method

    choices = {"1": "qr", "2": "phone"}
    while True:
        print("\nLogin methods:\n[1] QR code\n[2] Phone code\n[3] Exit\n")
        choice = input("riftwatch > ").strip()
        if choice == "3":
            raise SystemExit(0)
        if choice in choices:
            return choices[choice]
        print("Invalid option. Please choose 1, 2, or 3.")


async def authorize(client: TelegramClient) -> None:
    """Log the session in unless it is already authorized."""

    if await client.is_user_authorized():
        return

    try:
        if _login_method() == "phone":
            await _login_with_phone(client)
        else:
            await _login_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_second_factor())

    me = await client.get_me()
    LOGGER.info("Logged in as %s", getattr(me, "first_name", None) or getattr(me, "username", "unknown"))


async def connect(client: TelegramClient) -> TelegramClient:
    """Connect and make sure the session is authorized."""

    await client.connect()
    await authorize(client)
    return client
