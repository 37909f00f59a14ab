from __future__ import annotations

import logging
import mimetypes
from email.message import EmailMessage
from typing import Any, Dict, Optional

from bill_digest.config.settings import Settings
from bill_digest.gmail.client import GmailClient
from bill_digest.models import AggregateReport
from bill_digest.parsing.codec import decode

logger = logging.getLogger(__name__)


def build_message(report: AggregateReport, settings: Settings) -> EmailMessage:
    """Compose the outbound summary: text body, HTML alternative, bills re-attached."""
    msg = EmailMessage()
    # Dry runs may leave the addresses unset.
    if settings.sender_address:
        msg["From"] = settings.from_header
    if settings.to:
        msg["To"] = settings.to
    msg["Subject"] = settings.subject
    msg.set_content(report.text)
    msg.add_alternative(report.html, subtype="html")

    for attachment in report.attachments:
        mime_type, _ = mimetypes.guess_type(attachment.filename)
        maintype, subtype = (mime_type or "application/pdf").split("/", 1)
        msg.add_attachment(
            decode(attachment.content),
            maintype=maintype,
            subtype=subtype,
            filename=attachment.filename,
        )
    return msg


def send_report(
    client: GmailClient,
    report: AggregateReport,
    settings: Settings,
    *,
    dry_run: Optional[bool] = None,
) -> Optional[Dict[str, Any]]:
    """Send the summary through Gmail. Returns the sent message resource, or None on dry-run."""
    dry_run = settings.dry_run if dry_run is None else dry_run
    msg = build_message(report, settings)

    if dry_run:
        logger.info(
            "[DRY-RUN] would send %r to %s with %d attachment(s):\n%s",
            settings.subject,
            settings.to or "<unset>",
            len(report.attachments),
            report.text,
        )
        return None

    logger.info("[send] sending %r to %s", settings.subject, settings.to)
    resp = client.send_message(msg)
    if not resp or not resp.get("id"):
        logger.error("[send] Failed to send email. response=%r", resp)
    return resp
