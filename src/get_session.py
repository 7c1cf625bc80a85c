"""Interactive and headless authorization for the Telegram session."""

from __future__ import annotations

import logging
import os
from getpass import getpass
from typing import Optional

import qrcode
from telethon import TelegramClient, errors

from core.errors import StartupError

LOGGER = logging.getLogger(__name__)

QR_TIMEOUT_SECONDS = 120


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    print("\n=== SCAN THE QR CODE BELOW WITH TELEGRAM ===")
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    password = os.getenv("2FA")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    _print_qr(qr.url)
    LOGGER.info("QR login requested; waiting up to %ss for a scan", QR_TIMEOUT_SECONDS)
    await qr.wait(timeout=QR_TIMEOUT_SECONDS)


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    try:
        await client.sign_in(phone=phone, code=code)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


def _pick_login_method(configured: Optional[str]) -> str:
    if configured in {"qr", "phone"}:
        return configured
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        print("Select a login method: \n")
        choice = input("pricerelay > ").strip()
        if choice == "1":
            return "qr"
        elif choice == "2":
            return "phone"
        elif choice == "3":
            raise SystemExit(0)
        else:
            print("Invalid option. Please choose 1, 2, or 3.")


async def authorize(
    client: TelegramClient,
    headless: bool = False,
    login_method: Optional[str] = None,
) -> None:
    """Make sure the session is logged in.

    Headless mode never prompts: a session that is not authorized yet is a
    startup failure, so the relay can run unattended under a supervisor.
    """

    if await client.is_user_authorized():
        return

    if headless:
        raise StartupError(
            "Session is not authorized and HEADLESS=true; run once interactively to log in"
        )

    try:
        method = _pick_login_method(login_method)
        if method == "phone":
            await _authorize_with_phone(client)
        else:
            await _authorize_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())

    me = await client.get_me()
    LOGGER.info("Logged in as %s", getattr(me, "first_name", None) or getattr(me, "id", "unknown"))
