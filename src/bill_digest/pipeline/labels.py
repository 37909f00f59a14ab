from __future__ import annotations

import logging
from typing import Dict, Iterable, Set

from bill_digest.errors import LabelListFailure
from bill_digest.gmail.client import GmailClient
from bill_digest.gmail.retry import call_with_retry
from bill_digest.parsers.base import BaseParser

logger = logging.getLogger(__name__)


def load_labels(client: GmailClient) -> Dict[str, str]:
    """Return the mailbox labels as {name: id}."""
    try:
        labels = call_with_retry(client.list_labels)
    except Exception as exc:
        raise LabelListFailure(f"Failed to list labels: {exc}") from exc

    if not labels:
        raise LabelListFailure("Failed to list labels: mailbox returned no labels")

    labels_map: Dict[str, str] = {}
    for label in labels:
        name = label.get("name")
        label_id = label.get("id")
        if name and label_id:
            labels_map[name] = label_id

    if not labels_map:
        raise LabelListFailure("Failed to list labels: no label carried both a name and an id")
    return labels_map


def resolve_labels(labels_map: Dict[str, str], registry: Iterable[BaseParser]) -> Set[str]:
    """
    Bind each parser to its mailbox label id and return the active label ids.
    Parsers whose label is missing from the mailbox keep label_id=None and are skipped later.
    """
    active: Set[str] = set()
    for parser in registry:
        label_id = labels_map.get(parser.label_name) if parser.label_name else None
        parser.label_id = label_id
        if label_id:
            active.add(label_id)
            logger.debug("[labels] %s -> %s", parser.label_name, label_id)
        else:
            logger.info("[labels] no mailbox label named %r, parser %s is inactive", parser.label_name, parser.display_name)
    return active
