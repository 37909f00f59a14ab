from __future__ import annotations

import calendar
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from bill_digest.errors import MessageListFailure
from bill_digest.gmail.client import GmailClient
from bill_digest.gmail.retry import call_with_retry

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    messages: List[Dict[str, Any]] = field(default_factory=list)
    skipped: int = 0


def _subtract_month(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def after_date(now: Optional[datetime] = None) -> date:
    """
    Current UTC date minus one month and one day.
    The extra day keeps messages near the boundary from slipping through on clock/timezone skew.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return _subtract_month(now.date()) - timedelta(days=1)


def search_query(since: date) -> str:
    # Gmail search grammar accepts after:YYYY/MM/DD.
    return f"after:{since.strftime('%Y/%m/%d')}"


def list_message_ids(client: GmailClient, label_ids: Iterable[str], since: date) -> List[str]:
    """
    Collect message ids for every active label, in label order.
    Duplicates across labels are kept; the extractor's last-write-wins fold absorbs them.
    """
    label_ids = list(label_ids)
    if not label_ids:
        return []

    query = search_query(since)
    message_ids: List[str] = []
    failures = 0
    for label_id in label_ids:
        try:
            ids = call_with_retry(client.list_message_ids, label_id, query)
        except Exception as exc:
            failures += 1
            logger.warning("[list] label %s failed: %s: %s", label_id, type(exc).__name__, exc)
            continue
        logger.info("[list] label %s: %d messages %s", label_id, len(ids), query)
        message_ids.extend(ids)

    if failures == len(label_ids):
        raise MessageListFailure("Failed to get email messages for any label")
    return message_ids


def _fetch_one(client: GmailClient, message_id: str) -> Optional[Dict[str, Any]]:
    try:
        message = call_with_retry(client.get_message, message_id, "full")
    except Exception as exc:
        logger.warning("[skip] message %s: %s: %s", message_id, type(exc).__name__, exc)
        return None
    if not message or not message.get("payload"):
        logger.warning("[skip] message %s has no payload", message_id)
        return None
    return message


def fetch_messages(client: GmailClient, message_ids: List[str], *, max_workers: int = 4) -> FetchResult:
    """
    Fetch full messages with a bounded worker pool.
    Output keeps input order so downstream overwrite semantics stay deterministic.
    """
    result = FetchResult()
    if not message_ids:
        return result

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        fetched = list(pool.map(lambda mid: _fetch_one(client, mid), message_ids))

    for message in fetched:
        if message is None:
            result.skipped += 1
        else:
            result.messages.append(message)
    return result
