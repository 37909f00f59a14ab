from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Label:
    name: str
    id: str


@dataclass
class AttachmentRef:
    id: str
    # Transport (URL-safe) base64 as returned by the Gmail API.
    base64_value: str
    file_name: str
    directory: str

    @property
    def path(self) -> Path:
        return Path(self.directory) / self.file_name


@dataclass
class MessageDetail:
    id: str
    label_id: str
    body: Optional[str] = None
    # Which MIME branch produced the body: "text/plain" or "text/html".
    body_mime_type: Optional[str] = None
    attachments: List[AttachmentRef] = field(default_factory=list)
    raw_payload: Dict[str, Any] = field(default_factory=dict)
    failed_attachment_ids: List[str] = field(default_factory=list)


@dataclass
class BillRecord:
    bill_amount: str
    bill_description: str
    file_name: Optional[str] = None
    # Standard base64 of the file to re-attach to the summary.
    file_data: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_attachment(self) -> bool:
        return bool(self.file_name and self.file_data)


@dataclass(frozen=True)
class ReportAttachment:
    filename: str
    content: str
    encoding: str = "base64"


@dataclass(frozen=True)
class AggregateReport:
    text: str
    html: str
    attachments: List[ReportAttachment]
    total: Decimal
