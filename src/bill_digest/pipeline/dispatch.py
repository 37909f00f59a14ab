from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Iterable, Iterator, Optional

from bill_digest.errors import BillParseError
from bill_digest.models import BillRecord, MessageDetail
from bill_digest.parsers.base import BaseParser

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[BaseParser, Exception], None]


def _check_amount(parser: BaseParser, record: BillRecord) -> None:
    try:
        amount = Decimal(str(record.bill_amount))
    except (InvalidOperation, ValueError) as exc:
        raise BillParseError(f"{parser.display_name}: bill amount {record.bill_amount!r} is not a number") from exc
    if not amount.is_finite():
        raise BillParseError(f"{parser.display_name}: bill amount {record.bill_amount!r} is not finite")


def parse_emails(
    details: Dict[str, MessageDetail],
    registry: Iterable[BaseParser],
    on_error: Optional[ErrorCallback] = None,
) -> Iterator[BillRecord]:
    """
    Run each bound parser on the message for its label, in registry order.

    Parsers without a label or without a message this run are skipped. A failing
    parser is logged, reported through on_error and left out; the rest carry on.
    """
    for parser in registry:
        if not parser.label_id:
            continue
        detail = details.get(parser.label_id)
        if detail is None:
            logger.info("[parse] no new message for %s", parser.display_name)
            continue

        logger.info("[parse] %s <- message %s", parser.display_name, detail.id)
        try:
            record = parser.parse_email(detail)
            if not isinstance(record, BillRecord):
                raise BillParseError(f"{parser.display_name}: parser returned {type(record).__name__}")
            _check_amount(parser, record)
        except Exception as exc:
            logger.error(
                "[parse] %s failed on message %s: %s: %s",
                parser.display_name,
                detail.id,
                type(exc).__name__,
                exc,
            )
            if on_error:
                on_error(parser, exc)
            continue

        yield record
