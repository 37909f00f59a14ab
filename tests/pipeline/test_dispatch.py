from __future__ import annotations

from typing import List

from bill_digest.errors import BillParseError
from bill_digest.models import BillRecord, MessageDetail
from bill_digest.parsers.base import BaseParser
from bill_digest.pipeline.dispatch import parse_emails


class StubParser(BaseParser):
    def __init__(self, name: str, label_id: str | None, amount: str = "10.00", fail: bool = False) -> None:
        super().__init__()
        self.label_name = name
        self.display_name = name
        self.label_id = label_id
        self.amount = amount
        self.fail = fail
        self.calls: List[str] = []

    def parse_email(self, detail: MessageDetail) -> BillRecord:
        self.calls.append(detail.id)
        if self.fail:
            raise BillParseError(f"{self.display_name}: unreadable")
        return BillRecord(bill_amount=self.amount, bill_description=f"{self.display_name} {detail.body}")


def _details() -> dict:
    return {
        "L1": MessageDetail(id="m1", label_id="L1", body="one"),
        "L2": MessageDetail(id="m2", label_id="L2", body="two"),
    }


def test_parse_emails_follows_registry_order() -> None:
    registry = [StubParser("Water", "L2"), StubParser("Electric", "L1")]

    records = list(parse_emails(_details(), registry))

    assert [r.bill_description for r in records] == ["Water two", "Electric one"]


def test_parse_emails_skips_unbound_and_messageless_parsers() -> None:
    unbound = StubParser("Gas", None)
    no_message = StubParser("Internet", "L3")
    bound = StubParser("Electric", "L1")

    records = list(parse_emails(_details(), [unbound, no_message, bound]))

    assert len(records) == 1
    assert unbound.calls == []
    assert no_message.calls == []
    assert bound.calls == ["m1"]


def test_parse_emails_reports_and_omits_failures() -> None:
    errors = []
    registry = [
        StubParser("Electric", "L1", fail=True),
        StubParser("Water", "L2", amount="not-a-number"),
    ]
    ok = StubParser("Again", "L1", amount="3.5")

    records = list(parse_emails(_details(), registry + [ok], on_error=lambda p, e: errors.append((p.display_name, e))))

    assert [r.bill_amount for r in records] == ["3.5"]
    assert [name for name, _ in errors] == ["Electric", "Water"]
    assert all(isinstance(exc, BillParseError) for _, exc in errors)


def test_parse_emails_rejects_non_finite_amount() -> None:
    errors = []
    records = list(parse_emails(_details(), [StubParser("Electric", "L1", amount="NaN")], on_error=lambda p, e: errors.append(e)))
    assert records == []
    assert len(errors) == 1


def test_parse_emails_is_lazy() -> None:
    first, second = StubParser("Electric", "L1"), StubParser("Water", "L2")
    gen = parse_emails(_details(), [first, second])

    next(gen)

    assert first.calls == ["m1"]
    assert second.calls == []
