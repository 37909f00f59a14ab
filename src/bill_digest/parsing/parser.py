from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Collection, Dict, Iterable, List, Optional

from bill_digest.errors import AttachmentFetchFailure
from bill_digest.gmail.client import GmailClient
from bill_digest.gmail.retry import call_with_retry
from bill_digest.models import AttachmentRef, MessageDetail
from bill_digest.parsing.codec import decode, decode_text
from bill_digest.storage.attachments import persist

logger = logging.getLogger(__name__)

TEXT_PLAIN = "text/plain"
TEXT_HTML = "text/html"
MULTIPART_ALTERNATIVE = "multipart/alternative"
APPLICATION_PDF = "application/pdf"


def assign_label(label_ids: Iterable[str], active: Collection[str]) -> Optional[str]:
    """First label id, in the message's own order, that belongs to an active parser."""
    for label_id in label_ids or []:
        if label_id in active:
            return label_id
    return None


def _mime_type(part: Dict[str, Any]) -> str:
    return (part.get("mimeType") or "").lower()


def _find_child(part: Dict[str, Any], mime_type: str) -> Optional[Dict[str, Any]]:
    for child in part.get("parts") or []:
        if _mime_type(child) == mime_type:
            return child
    return None


def fetch_attachment(
    client: GmailClient,
    message_id: str,
    part: Dict[str, Any],
    directory: Path | str,
) -> AttachmentRef:
    """Download one PDF part, write it under a fresh uuid name and return its reference."""
    attachment_id = (part.get("body") or {}).get("attachmentId")
    if not attachment_id:
        raise AttachmentFetchFailure(message_id, "<missing>", "part has no attachmentId")

    try:
        resp = call_with_retry(client.get_attachment, message_id, attachment_id)
    except Exception as exc:
        raise AttachmentFetchFailure(message_id, attachment_id, f"{type(exc).__name__}: {exc}") from exc

    data = (resp or {}).get("data")
    if not data:
        raise AttachmentFetchFailure(message_id, attachment_id, "empty attachment body")

    try:
        raw = decode(data)
    except ValueError as exc:
        raise AttachmentFetchFailure(message_id, attachment_id, f"undecodable data: {exc}") from exc

    ref = AttachmentRef(
        id=attachment_id,
        base64_value=data,
        file_name=f"{uuid.uuid4()}.pdf",
        directory=str(directory),
    )
    try:
        persist(raw, ref.directory, ref.file_name)
    except OSError as exc:
        raise AttachmentFetchFailure(message_id, attachment_id, f"could not write {ref.file_name}: {exc}") from exc
    return ref


def extract_detail(
    client: GmailClient,
    message: Dict[str, Any],
    active: Collection[str],
    directory: Path | str,
) -> Optional[MessageDetail]:
    """
    Turn one full Gmail message into a MessageDetail.

    Only the top-level parts are walked (plus the children of a multipart/alternative).
    Body writes are last-write-wins in part order. Returns None when the message
    carries no active label, since no parser could consume it.
    """
    message_id = message.get("id", "")
    label_id = assign_label(message.get("labelIds") or [], active)
    if label_id is None:
        logger.debug("[orphan] message %s has no active label", message_id)
        return None

    payload = message.get("payload") or {}
    detail = MessageDetail(id=message_id, label_id=label_id, raw_payload=payload)

    # A single-part message is its own only part.
    parts: List[Dict[str, Any]] = payload.get("parts") or [payload]
    for part in parts:
        mime_type = _mime_type(part)

        if mime_type == TEXT_HTML:
            # Stored decoded, not as base64; raw_payload still holds the encoded part.
            detail.body = decode_text((part.get("body") or {}).get("data"))
            detail.body_mime_type = TEXT_HTML

        elif mime_type == MULTIPART_ALTERNATIVE:
            inner = _find_child(part, TEXT_PLAIN)
            if inner is not None:
                detail.body = decode_text((inner.get("body") or {}).get("data"))
                detail.body_mime_type = TEXT_PLAIN

        elif mime_type == APPLICATION_PDF:
            try:
                detail.attachments.append(fetch_attachment(client, message_id, part, directory))
            except AttachmentFetchFailure as exc:
                # Keep the message and its other parts.
                logger.warning("[attachment] %s", exc)
                detail.failed_attachment_ids.append(exc.attachment_id)

    return detail


def extract_details(
    client: GmailClient,
    messages: List[Dict[str, Any]],
    active: Collection[str],
    directory: Path | str,
    *,
    max_workers: int = 4,
) -> Dict[str, MessageDetail]:
    """
    Extract every message and key the results by label id.

    Extraction fans out over a worker pool, but the fold runs in input order:
    a later message with the same label replaces the earlier one.
    """
    active = frozenset(active)
    if not messages:
        return {}

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        extracted = list(pool.map(lambda m: extract_detail(client, m, active, directory), messages))

    details: Dict[str, MessageDetail] = {}
    for detail in extracted:
        if detail is None:
            continue
        if detail.label_id in details:
            logger.info(
                "[extract] message %s replaces %s for label %s",
                detail.id,
                details[detail.label_id].id,
                detail.label_id,
            )
        details[detail.label_id] = detail
    return details
