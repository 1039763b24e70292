"""
Email service – sends reservation emails via SMTP.

In development (no SMTP configured), emails are printed to the console
so you can see what *would* be sent without configuring a mail server.
"""

from __future__ import annotations

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Protocol
from urllib.parse import urlencode

from fieldbook.config import (
    CONFIRMATION_WINDOW_MINUTES,
    PUBLIC_BASE_URL,
    SMTP_FROM_EMAIL,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
    smtp_enabled,
)
from fieldbook.core.timeofday import end_time
from fieldbook.models import Reservation, Terrain

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    async def reservation_created(self, reservation: Reservation, field: Terrain) -> None: ...

    async def reservation_confirmed(self, reservation: Reservation, field: Terrain) -> None: ...


def confirmation_link(token: str) -> str:
    return f"{PUBLIC_BASE_URL}/api/reservations/confirm?{urlencode({'token': token})}"


def _build_summary(reservation: Reservation, field: Terrain) -> str:
    """One-line human-readable summary of a reservation."""
    day = reservation.date.strftime("%a %d %b")
    time = f"{reservation.start_time}–{end_time(reservation.start_time, reservation.duration)}"
    price = f" · {reservation.price:g} TND" if reservation.price is not None else ""
    return f"{field.name} · {day} {time}{price}"


def _build_html_body(heading: str, intro: str, summary: str, link: str | None = None) -> str:
    button = ""
    if link:
        button = f"""
      <p>
        <a href="{escape(link)}"
           style="display:inline-block;padding:10px 18px;background:#2e7d32;color:#fff;
                  text-decoration:none;border-radius:4px">Confirm my reservation</a>
      </p>"""
    return f"""
    <html>
    <body style="font-family:sans-serif;color:#333">
      <h2>{escape(heading)}</h2>
      <p>{escape(intro)}</p>
      <p style="font-weight:bold">{escape(summary)}</p>{button}
    </body>
    </html>
    """


async def send_email(to_email: str, subject: str, plain: str, html: str) -> None:
    """Send (or log) one email.  Errors propagate to the caller."""
    # ── Console fallback (dev mode) ───────────────────────────────────
    if not smtp_enabled():
        logger.info(
            "📧 [DEV] Would send email to %s:\n  Subject: %s\n%s",
            to_email,
            subject,
            plain,
        )
        return

    # ── Real SMTP send ────────────────────────────────────────────────
    import aiosmtplib

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = SMTP_FROM_EMAIL
    msg["To"] = to_email
    msg.attach(MIMEText(plain, "plain"))
    msg.attach(MIMEText(html, "html"))

    await aiosmtplib.send(
        msg,
        hostname=SMTP_HOST,
        port=SMTP_PORT,
        username=SMTP_USERNAME,
        password=SMTP_PASSWORD,
        start_tls=SMTP_USE_TLS,
    )
    logger.info("Email sent to %s (%s)", to_email, subject)


class EmailDispatcher:
    """Reservation notifications by email."""

    async def reservation_created(self, reservation: Reservation, field: Terrain) -> None:
        summary = _build_summary(reservation, field)
        if reservation.confirmation_token is None:
            # staff bookings are confirmed on creation
            await self.reservation_confirmed(reservation, field)
            return

        link = confirmation_link(reservation.confirmation_token)
        subject = f"Confirm your reservation – {field.name}"
        intro = (
            f"Please confirm within {CONFIRMATION_WINDOW_MINUTES} minutes, "
            "otherwise the slot is released."
        )
        plain = f"{summary}\n\n{intro}\n{link}\n"
        await send_email(
            reservation.email,
            subject,
            plain,
            _build_html_body("⚽ Reservation received", intro, summary, link),
        )

    async def reservation_confirmed(self, reservation: Reservation, field: Terrain) -> None:
        summary = _build_summary(reservation, field)
        subject = f"Reservation confirmed – {field.name}"
        intro = "Your reservation is confirmed. See you on the field!"
        await send_email(
            reservation.email,
            subject,
            f"{summary}\n\n{intro}\n",
            _build_html_body("✅ Reservation confirmed", intro, summary),
        )
