from __future__ import annotations

import re
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from bill_digest.errors import BillParseError
from bill_digest.models import BillRecord, MessageDetail
from bill_digest.parsing.codec import to_standard

CENTS = Decimal("0.01")


def parse_amount(text: str | None) -> Optional[str]:
    """
    Normalize a money string like '$1,234.5', '12.34 USD' or '63,75' to '1234.50'.
    Returns None when no number can be read.
    """
    if not text:
        return None

    cleaned = re.sub(r"[£$€¥\s]|USD|EUR|GBP", "", text, flags=re.IGNORECASE)
    # European decimal comma: exactly two digits after a single comma.
    if re.fullmatch(r"-?\d+,\d{2}", cleaned):
        cleaned = cleaned.replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")

    match = re.search(r"-?\d+(?:\.\d+)?", cleaned)
    if not match:
        return None
    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        return None
    return str(value.quantize(CENTS, rounding=ROUND_HALF_UP))


class BaseParser(ABC):
    """
    Base class for per-source bill parsers.

    A parser is bound to one mailbox label by name. The label resolver fills in
    label_id at the start of each run; a parser whose label does not exist in the
    mailbox keeps label_id=None and is never dispatched to.
    """

    # Mailbox label this parser consumes, e.g. "Bills/Electric"
    label_name: str = ""

    # Human-friendly name used in logs and bill descriptions
    display_name: str = "base_parser"

    # Regexes tried in order by find_amount(); group 1 is the amount
    amount_patterns: Sequence[str] = ()

    def __init__(self) -> None:
        self.label_id: Optional[str] = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(label_name={self.label_name!r}, label_id={self.label_id!r})"

    # --- Helpers ---

    def norm(self, s: str | None) -> str:
        """Collapse whitespace (None-safe)."""
        return re.sub(r"\s+", " ", s or "").strip()

    def regex(self, text: str | None, pattern: str) -> Optional[str]:
        """First capture group (or whole match) of a case-insensitive search."""
        match = re.search(pattern, text or "", flags=re.IGNORECASE)
        if not match:
            return None
        return match.group(1) if match.groups() else match.group(0)

    def html_text(self, html: str | None) -> str:
        """Visible text of an HTML document, whitespace-collapsed."""
        soup = BeautifulSoup(html or "", "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()
        return self.norm(soup.get_text(" "))

    def body_text(self, detail: MessageDetail) -> str:
        if detail.body_mime_type == "text/html":
            return self.html_text(detail.body)
        return self.norm(detail.body)

    def find_amount(self, text: str, patterns: Sequence[str] | None = None) -> str:
        for pattern in patterns or self.amount_patterns:
            amount = parse_amount(self.regex(text, pattern))
            if amount is not None:
                return amount
        raise BillParseError(f"{self.display_name}: no bill amount found in message")

    def first_attachment(self, detail: MessageDetail, prefix: str | None = None) -> Tuple[Optional[str], Optional[str]]:
        """(file name, standard base64) of the first PDF, or (None, None)."""
        if not detail.attachments:
            return None, None
        ref = detail.attachments[0]
        stem = re.sub(r"[^A-Za-z0-9]+", "_", prefix or self.display_name).strip("_") or "bill"
        return f"{stem}.pdf", to_standard(ref.base64_value)

    def describe(self, amount: str) -> str:
        return f"{self.display_name}: ${amount}"

    # --- Parser API ---

    @abstractmethod
    def parse_email(self, detail: MessageDetail) -> BillRecord:
        """Read one bill out of detail or raise BillParseError."""
        raise NotImplementedError
