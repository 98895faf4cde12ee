"""Outbound email transport: Resend or Postmark over HTTPS, or plain SMTP."""
from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Callable, Optional

import httpx

from hrms.core.settings import settings

SEND_TIMEOUT_SECONDS = 15


@dataclass
class EmailSendResult:
    provider: str
    message_id: Optional[str] = None


class EmailSendError(RuntimeError):
    pass


@dataclass(frozen=True)
class _HttpProvider:
    name: str
    url: str
    id_field: str
    auth_headers: Callable[[str], dict]
    body: Callable[[str, str, str, Optional[str]], dict]


def _resend_body(to_address: str, subject: str, html: str, text: Optional[str]) -> dict:
    body = {"from": settings.email_from, "to": [to_address], "subject": subject, "html": html}
    if text:
        body["text"] = text
    return body


def _postmark_body(to_address: str, subject: str, html: str, text: Optional[str]) -> dict:
    body = {"From": settings.email_from, "To": to_address, "Subject": subject, "HtmlBody": html}
    if text:
        body["TextBody"] = text
    return body


HTTP_PROVIDERS = {
    "resend": _HttpProvider(
        name="Resend",
        url="https://api.resend.com/emails",
        id_field="id",
        auth_headers=lambda key: {"Authorization": f"Bearer {key}"},
        body=_resend_body,
    ),
    "postmark": _HttpProvider(
        name="Postmark",
        url="https://api.postmarkapp.com/email",
        id_field="MessageID",
        auth_headers=lambda key: {"X-Postmark-Server-Token": key, "Accept": "application/json"},
        body=_postmark_body,
    ),
}


def send_email(*, to_address: str, subject: str, html: str, text: str | None = None) -> EmailSendResult:
    """Send one message through the configured provider or raise ``EmailSendError``."""
    provider = settings.email_provider
    if provider in {"disabled", "none"}:
        raise EmailSendError("EMAIL_PROVIDER disabled")
    if not settings.email_from:
        raise EmailSendError("EMAIL_FROM not configured")
    if provider == "smtp":
        return _send_smtp(to_address, subject, html, text)
    if provider in HTTP_PROVIDERS:
        return _send_http(provider, to_address, subject, html, text)
    raise EmailSendError(f"Unsupported EMAIL_PROVIDER: {provider}")


def _send_http(key: str, to_address: str, subject: str, html: str, text: Optional[str]) -> EmailSendResult:
    provider = HTTP_PROVIDERS[key]
    if not settings.email_api_key:
        raise EmailSendError(f"EMAIL_API_KEY not configured for {provider.name}")
    try:
        with httpx.Client(timeout=SEND_TIMEOUT_SECONDS) as client:
            response = client.post(
                provider.url,
                json=provider.body(to_address, subject, html, text),
                headers=provider.auth_headers(settings.email_api_key),
            )
    except httpx.HTTPError as exc:
        raise EmailSendError(f"{provider.name} transport error: {exc}") from exc
    if response.is_error:
        raise EmailSendError(f"{provider.name} error: {response.status_code} {response.text}")
    return EmailSendResult(provider=key, message_id=response.json().get(provider.id_field))


def _send_smtp(to_address: str, subject: str, html: str, text: Optional[str]) -> EmailSendResult:
    if not settings.smtp_host:
        raise EmailSendError("SMTP_HOST not configured")
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings.email_from
    message["To"] = to_address
    message.set_content(text or "Open this message in an HTML-capable mail client.")
    message.add_alternative(html, subtype="html")
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SEND_TIMEOUT_SECONDS) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailSendError(f"SMTP error: {exc}") from exc
    return EmailSendResult(provider="smtp")
