from __future__ import annotations

import threading
from dataclasses import dataclass
from email.message import EmailMessage
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import httplib2
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from bill_digest.parsing.codec import encode


# Read bills, send the summary.
SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.send",
]


def missing_scopes(granted: Optional[Iterable[str]]) -> List[str]:
    """Scopes from SCOPES that a token does not grant, in SCOPES order."""
    granted_set = set(granted or [])
    return [scope for scope in SCOPES if scope not in granted_set]


@dataclass(frozen=True)
class GmailClientConfig:
    # Path to OAuth client credentials downloaded from Google Cloud Console.
    credentials_path: Path
    # Token cache will be created here after first login.
    token_path: Path
    # Gmail userId, "me" refers to the authenticated user.
    user_id: str = "me"
    # Socket timeout per request, in seconds.
    timeout: float = 30.0


class GmailClient:
    def __init__(self, cfg: GmailClientConfig):
        self._cfg = cfg
        self._creds: Optional[Credentials] = None
        # httplib2 is not thread-safe, so each worker thread gets its own service.
        self._local = threading.local()

    def connect(self) -> None:
        """Load or create OAuth credentials and build the service for this thread."""
        creds = None

        if self._cfg.token_path.exists():
            creds = Credentials.from_authorized_user_file(str(self._cfg.token_path), SCOPES)

        # If there are no (valid) credentials available, let the user log in.
        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                flow = InstalledAppFlow.from_client_secrets_file(
                    str(self._cfg.credentials_path),
                    SCOPES,
                )
                creds = flow.run_local_server(port=0)

            # Save the credentials for the next run.
            self._cfg.token_path.parent.mkdir(parents=True, exist_ok=True)
            self._cfg.token_path.write_text(creds.to_json(), encoding="utf-8")

        self._creds = creds
        self._local.service = self._build_service()

    def _build_service(self):
        http = AuthorizedHttp(self._creds, http=httplib2.Http(timeout=self._cfg.timeout))
        return build("gmail", "v1", http=http, cache_discovery=False)

    @property
    def service(self):
        if self._creds is None:
            raise RuntimeError("GmailClient is not connected. Call connect() first.")
        service = getattr(self._local, "service", None)
        if service is None:
            service = self._build_service()
            self._local.service = service
        return service

    def list_labels(self) -> List[Dict[str, Any]]:
        """Return all mailbox labels as [{"id": ..., "name": ..., ...}]."""
        resp = self.service.users().labels().list(userId=self._cfg.user_id).execute()
        return resp.get("labels") or []

    def list_message_ids(self, label_id: str, query: str = "", page_size: int = 100) -> List[str]:
        """
        List ids of all messages carrying label_id and matching a search query.
        Example query: 'after:2024/01/31'
        """
        messages = self.service.users().messages()
        request = messages.list(
            userId=self._cfg.user_id,
            labelIds=[label_id],
            q=query,
            maxResults=page_size,
        )
        ids: List[str] = []
        while request is not None:
            resp = request.execute()
            ids.extend(m["id"] for m in resp.get("messages", []))
            request = messages.list_next(request, resp)
        return ids

    def get_message(self, message_id: str, fmt: str = "full") -> Dict[str, Any]:
        """
        Fetch a full message resource.
        fmt: 'full' | 'metadata' | 'minimal' | 'raw'
        """
        return (
            self.service.users()
            .messages()
            .get(userId=self._cfg.user_id, id=message_id, format=fmt)
            .execute()
        )

    def get_attachment(self, message_id: str, attachment_id: str) -> Dict[str, Any]:
        """Fetch one attachment body: {"data": <url-safe base64>, "size": ...}."""
        return (
            self.service.users()
            .messages()
            .attachments()
            .get(userId=self._cfg.user_id, messageId=message_id, id=attachment_id)
            .execute()
        )

    def send_message(self, msg: EmailMessage) -> Dict[str, Any]:
        """Send a composed message; returns the created message resource."""
        raw = encode(msg.as_bytes())
        return (
            self.service.users()
            .messages()
            .send(userId=self._cfg.user_id, body={"raw": raw})
            .execute()
        )

    def get_profile(self) -> Dict[str, Any]:
        """Get the Gmail profile of the authenticated user."""
        return self.service.users().getProfile(userId=self._cfg.user_id).execute()
