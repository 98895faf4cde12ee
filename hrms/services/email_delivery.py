"""Best-effort outbound email, run after the response has been sent."""
from __future__ import annotations

import logging
from typing import Iterable

from hrms.core.observability import hrms_emails_total
from hrms.core.settings import settings
from hrms.services.email import EmailSendError, send_email
from hrms.services.email_templates import build_email_content


logger = logging.getLogger(__name__)


def deliver_email(template: str, to_addresses: Iterable[str], context: dict) -> int:
    """
    Render ``template`` and send it to each address.

    Failures are logged and counted, never raised and never retried.
    Returns the number of messages accepted by the provider.
    """
    if settings.email_provider in {"disabled", "none"}:
        hrms_emails_total.labels(template=template, outcome="skipped").inc()
        logger.info(f"Email {template} skipped: EMAIL_PROVIDER disabled")
        return 0
    content = build_email_content(template, context)
    sent = 0
    for address in to_addresses:
        if not address:
            continue
        try:
            result = send_email(
                to_address=address,
                subject=content["subject"],
                html=content["html"],
                text=content["text"],
            )
        except EmailSendError as exc:
            hrms_emails_total.labels(template=template, outcome="failed").inc()
            logger.error(f"Email {template} to {address} failed: {exc}")
            continue
        hrms_emails_total.labels(template=template, outcome="sent").inc()
        logger.info(f"Email {template} sent to {address} (provider={result.provider}, message_id={result.message_id})")
        sent += 1
    return sent
