from __future__ import annotations


class BillDigestError(Exception):
    """Base class for errors raised by the bill digest pipeline."""


class LabelListFailure(BillDigestError):
    """The mailbox label listing failed or returned nothing usable. Fatal."""


class MessageListFailure(BillDigestError):
    """No message id list could be obtained for any active label. Fatal."""


class AttachmentFetchFailure(BillDigestError):
    """One PDF attachment could not be fetched or decoded."""

    def __init__(self, message_id: str, attachment_id: str, reason: str = "") -> None:
        self.message_id = message_id
        self.attachment_id = attachment_id
        super().__init__(
            f"Failed to fetch attachment {attachment_id} of message {message_id}"
            + (f": {reason}" if reason else "")
        )


class BillParseError(BillDigestError):
    """A parser could not read a bill out of its message."""
