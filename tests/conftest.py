from __future__ import annotations

import base64
from email.message import EmailMessage
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import pytest


def urlsafe(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    # Gmail strips the padding.
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


class FakeGmailClient:
    """In-memory stand-in for GmailClient with the same call surface."""

    def __init__(
        self,
        labels: List[Dict[str, str]] | Exception | None = None,
        listing: Dict[str, List[str] | Exception] | None = None,
        messages: Dict[str, Dict[str, Any] | Exception] | None = None,
        attachments: Dict[Tuple[str, str], str | Exception] | None = None,
    ) -> None:
        self.labels = labels if labels is not None else []
        self.listing = listing or {}
        self.messages = messages or {}
        self.attachments = attachments or {}
        self.queries: List[Tuple[str, str]] = []
        self.sent: List[EmailMessage] = []

    @staticmethod
    def _unwrap(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    def list_labels(self) -> List[Dict[str, str]]:
        return self._unwrap(self.labels)

    def list_message_ids(self, label_id: str, query: str = "") -> List[str]:
        self.queries.append((label_id, query))
        return list(self._unwrap(self.listing.get(label_id, [])))

    def get_message(self, message_id: str, fmt: str = "full") -> Dict[str, Any]:
        return self._unwrap(self.messages[message_id])

    def get_attachment(self, message_id: str, attachment_id: str) -> Dict[str, Any]:
        return {"data": self._unwrap(self.attachments[(message_id, attachment_id)])}

    def send_message(self, msg: EmailMessage) -> Dict[str, Any]:
        self.sent.append(msg)
        return {"id": f"sent-{len(self.sent)}", "labelIds": ["SENT"]}


@pytest.fixture
def fake_gmail() -> Callable[..., FakeGmailClient]:
    return FakeGmailClient


@pytest.fixture
def b64() -> Callable[[bytes | str], str]:
    return urlsafe


@pytest.fixture
def text_part() -> Callable[[str], Dict[str, Any]]:
    """multipart/alternative with a text/plain child, as Gmail returns it."""

    def _factory(text: str, html: Optional[str] = None) -> Dict[str, Any]:
        children = [{"mimeType": "text/plain", "body": {"data": urlsafe(text)}}]
        if html is not None:
            children.append({"mimeType": "text/html", "body": {"data": urlsafe(html)}})
        return {"mimeType": "multipart/alternative", "parts": children}

    return _factory


@pytest.fixture
def html_part() -> Callable[[str], Dict[str, Any]]:
    def _factory(html: str) -> Dict[str, Any]:
        return {"mimeType": "text/html", "body": {"data": urlsafe(html)}}

    return _factory


@pytest.fixture
def pdf_part() -> Callable[[str], Dict[str, Any]]:
    def _factory(attachment_id: str, filename: str = "bill.pdf") -> Dict[str, Any]:
        return {
            "mimeType": "application/pdf",
            "filename": filename,
            "body": {"attachmentId": attachment_id, "size": 1024},
        }

    return _factory


@pytest.fixture
def make_message() -> Callable[..., Dict[str, Any]]:
    def _factory(
        message_id: str,
        label_ids: Iterable[str],
        parts: Iterable[Dict[str, Any]] = (),
    ) -> Dict[str, Any]:
        return {
            "id": message_id,
            "threadId": f"thread-{message_id}",
            "labelIds": list(label_ids),
            "payload": {"mimeType": "multipart/mixed", "parts": list(parts)},
        }

    return _factory
