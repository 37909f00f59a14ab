# src/bill_digest/app/run.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from bill_digest.actions.mailer import send_report
from bill_digest.config.paths import CREDENTIALS_PATH, TOKEN_PATH
from bill_digest.config.settings import Settings, load_settings
from bill_digest.gmail.client import GmailClient, GmailClientConfig
from bill_digest.parsers.base import BaseParser
from bill_digest.parsers.registry import registry_from_names
from bill_digest.parsing.parser import extract_details
from bill_digest.pipeline.composer import compose_report
from bill_digest.pipeline.dispatch import parse_emails
from bill_digest.pipeline.fetcher import after_date, fetch_messages, list_message_ids
from bill_digest.pipeline.labels import load_labels, resolve_labels
from bill_digest.storage.attachments import cleanup

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, Dict[str, Any]], None]


@dataclass
class RunSummary:
    active_labels: int
    message_ids_seen: int
    messages_fetched: int
    skipped_messages: int
    details: int
    bills: int
    parse_errors: int
    attachment_errors: int
    attachments: int
    total: str
    since: str
    sent: bool


def load_gmail_config(timeout: float = 30.0) -> GmailClientConfig:
    if not CREDENTIALS_PATH.exists():
        raise RuntimeError(
            f"Missing Gmail credentials at {CREDENTIALS_PATH}. "
            "Did you configure BILL_DIGEST_SECRETS_DIR?"
        )
    return GmailClientConfig(
        credentials_path=CREDENTIALS_PATH,
        token_path=TOKEN_PATH,
        user_id="me",
        timeout=timeout,
    )


def run_once(
    *,
    client: Optional[GmailClient] = None,
    registry: Optional[List[BaseParser]] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
    verbose: bool = False,
    progress_cb: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """
    Execute one bill digest run and return a machine-readable summary.

    Args:
        client: Connected Gmail capability; built from SECRETS_DIR when omitted.
        registry: Parser registry; builtins (filtered by settings.parsers) when omitted.
        settings: Run settings; resolved from the environment when omitted.
        now: Clock override for the search window and report dates.
        verbose: If True, print progress for CLI usage.

    Returns:
        dict summary (JSON-serializable).

    Raises:
        LabelListFailure / MessageListFailure when there is nothing to work on.
    """
    def log(msg: str) -> None:
        logger.info(msg)
        if verbose:
            print(msg)

    def report(
        step: str,
        *,
        detail: str | None = None,
        metrics: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> None:
        if not progress_cb:
            return
        payload: Dict[str, Any] = {"detail": detail}
        if metrics:
            payload["metrics"] = metrics
        if extra:
            payload.update(extra)
        progress_cb(step, payload)

    settings = settings or load_settings()
    now = now or datetime.now(timezone.utc)
    since = after_date(now)
    registry = registry if registry is not None else registry_from_names(settings.parsers)
    parse_errors = 0

    def on_parse_error(parser: BaseParser, exc: Exception) -> None:
        nonlocal parse_errors
        parse_errors += 1
        report(
            "error",
            detail=f"{type(exc).__name__}: {exc}",
            error={
                "parser": parser.display_name,
                "label": parser.label_name,
                "error": f"{type(exc).__name__}: {exc}",
            },
        )

    try:
        # --- Gmail client ---
        if client is None:
            report("connect_gmail", detail="Connecting to Gmail")
            client = GmailClient(load_gmail_config(timeout=settings.http_timeout))
            client.connect()

        # --- Labels ---
        report("load_labels", detail="Loading mailbox labels")
        labels_map = load_labels(client)
        active = resolve_labels(labels_map, registry)
        log(f"[labels] {len(active)} of {len(registry)} parsers have a mailbox label")

        # --- Messages ---
        report("list_messages", detail=f"Listing messages after {since:%Y/%m/%d}")
        message_ids = list_message_ids(client, sorted(active), since)
        log(f"[run] Found {len(message_ids)} messages")

        report("fetch_messages", detail=f"Loading message payloads ({len(message_ids)})")
        fetched = fetch_messages(client, message_ids, max_workers=settings.max_workers)

        report("extract", detail="Extracting bodies and attachments")
        details = extract_details(
            client,
            fetched.messages,
            active,
            settings.attachments_dir,
            max_workers=settings.max_workers,
        )
        attachment_errors = sum(len(d.failed_attachment_ids) for d in details.values())

        # --- Parse + compose ---
        report("parse", detail=f"Parsing {len(details)} bills")
        records = list(parse_emails(details, registry, on_error=on_parse_error))

        report("compose", detail="Composing summary")
        summary_report = compose_report(records, since=since, now=now)
        log(f"[run] Sending:\n{summary_report.text}")

        # --- Send ---
        report("send", detail="Sending summary" if not settings.dry_run else "Dry run, not sending")
        resp = send_report(client, summary_report, settings)
        sent = bool(resp and resp.get("id"))
    finally:
        report("cleanup", detail="Removing downloaded attachments")
        removed = cleanup(settings.attachments_dir)
        logger.debug("[cleanup] removed %d file(s)", removed)

    summary = RunSummary(
        active_labels=len(active),
        message_ids_seen=len(message_ids),
        messages_fetched=len(fetched.messages),
        skipped_messages=fetched.skipped,
        details=len(details),
        bills=len(records),
        parse_errors=parse_errors,
        attachment_errors=attachment_errors,
        attachments=len(summary_report.attachments),
        total=str(summary_report.total),
        since=since.isoformat(),
        sent=sent,
    )
    report("done", detail="Run completed", metrics=asdict(summary))
    return asdict(summary)
