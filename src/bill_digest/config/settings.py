from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

from bill_digest.config.paths import ATTACHMENTS_DIR, resolve_path


DEFAULT_SUBJECT = "Monthly Utility Bill"


@dataclass(frozen=True)
class Settings:
    # Outbound summary mail.
    sender_name: str = "Bill Digest"
    sender_address: str = ""
    to: str = ""
    subject: str = DEFAULT_SUBJECT

    # If True the summary is composed and logged but never sent.
    dry_run: bool = False
    # Worker threads for message/attachment fetches; 1 means sequential.
    max_workers: int = 4
    # Per-call socket timeout for Gmail requests, in seconds.
    http_timeout: float = 30.0
    log_level: str = "INFO"
    attachments_dir: Path = ATTACHMENTS_DIR
    # Optional allow-list of parser label names; empty means all builtins.
    parsers: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def from_header(self) -> str:
        if self.sender_name:
            return f"{self.sender_name} <{self.sender_address}>"
        return self.sender_address


def _normalize_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return None


def _require(key: str) -> str:
    value = os.getenv(key, "").strip()
    if not value:
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


def _number(key: str, default: Any, cast: Callable[[str], Any]) -> Any:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"Invalid value for {key}: {raw!r}") from exc


def load_settings(*, dry_run: Optional[bool] = None) -> Settings:
    """
    Resolve settings from the environment (.env is loaded by config.paths).
    Sender and recipient are only required when the summary is actually sent.
    """
    if dry_run is None:
        dry_run = bool(_normalize_bool(os.getenv("BILL_DIGEST_DRY_RUN")))

    if dry_run:
        sender_address = os.getenv("BILL_DIGEST_SENDER_ADDRESS", "").strip()
        to = os.getenv("BILL_DIGEST_TO", "").strip()
    else:
        sender_address = _require("BILL_DIGEST_SENDER_ADDRESS")
        to = _require("BILL_DIGEST_TO")

    parsers = tuple(
        name.strip()
        for name in os.getenv("BILL_DIGEST_PARSERS", "").split(",")
        if name.strip()
    )

    return Settings(
        sender_name=os.getenv("BILL_DIGEST_SENDER_NAME", "Bill Digest").strip(),
        sender_address=sender_address,
        to=to,
        subject=os.getenv("BILL_DIGEST_SUBJECT", DEFAULT_SUBJECT).strip() or DEFAULT_SUBJECT,
        dry_run=dry_run,
        max_workers=max(1, _number("BILL_DIGEST_MAX_WORKERS", 4, int)),
        http_timeout=_number("BILL_DIGEST_HTTP_TIMEOUT", 30.0, float),
        log_level=os.getenv("BILL_DIGEST_LOG_LEVEL", "INFO").upper(),
        # Re-resolved so overrides after import are honored.
        attachments_dir=resolve_path("BILL_DIGEST_ATTACHMENTS_DIR", "attachments"),
        parsers=parsers,
    )
