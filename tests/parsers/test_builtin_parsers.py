from __future__ import annotations

import base64

import pytest

from bill_digest.errors import BillParseError
from bill_digest.models import AttachmentRef, MessageDetail
from bill_digest.parsers.base import parse_amount
from bill_digest.parsers.builtins import ElectricBillParser, InternetBillParser, WaterBillParser
from bill_digest.parsers.registry import default_registry, registry_from_names


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("$1,234.5", "1234.50"),
        ("12.34 USD", "12.34"),
        ("€ 63,75", "63.75"),
        ("  $ 7 ", "7.00"),
        ("-5.005", "-5.01"),
        ("n/a", None),
        (None, None),
    ],
)
def test_parse_amount(raw, expected) -> None:
    assert parse_amount(raw) == expected


def test_electric_parser_reads_plain_text_and_reattaches_pdf() -> None:
    pdf = b"%PDF-1.5 electric"
    detail = MessageDetail(
        id="m1",
        label_id="L1",
        body="Your statement is ready.\nAmount due: $84.20\nDue date: Nov 5, 2026\n",
        body_mime_type="text/plain",
        attachments=[
            AttachmentRef(
                id="a1",
                base64_value=base64.urlsafe_b64encode(pdf).decode().rstrip("="),
                file_name="0b1c.pdf",
                directory="attachments",
            )
        ],
    )

    record = ElectricBillParser().parse_email(detail)

    assert record.bill_amount == "84.20"
    assert record.bill_description == "Electric: $84.20 (due Nov 5, 2026)"
    assert record.file_name == "Electric.pdf"
    assert base64.b64decode(record.file_data) == pdf
    assert record.has_attachment


def test_electric_parser_without_amount_raises() -> None:
    detail = MessageDetail(id="m1", label_id="L1", body="Thanks for your payment!", body_mime_type="text/plain")
    with pytest.raises(BillParseError):
        ElectricBillParser().parse_email(detail)


def test_water_parser_scrapes_html_table() -> None:
    html = """
    <html><head><style>td { color: red }</style></head><body>
      <table>
        <tr><td>Account Number:</td><td>7781-0032</td></tr>
        <tr><td>Total Amount Due</td><td><strong>$45.10</strong></td></tr>
      </table>
    </body></html>
    """
    detail = MessageDetail(id="m2", label_id="L2", body=html, body_mime_type="text/html")

    record = WaterBillParser().parse_email(detail)

    assert record.bill_amount == "45.10"
    assert record.bill_description == "Water: $45.10"
    assert record.extra["account"] == "7781-0032"
    assert not record.has_attachment


def test_water_parser_requires_body() -> None:
    with pytest.raises(BillParseError):
        WaterBillParser().parse_email(MessageDetail(id="m2", label_id="L2"))


def test_internet_parser_reads_balance() -> None:
    detail = MessageDetail(id="m3", label_id="L3", body="Balance due: $59.99", body_mime_type="text/plain")
    record = InternetBillParser().parse_email(detail)
    assert record.bill_amount == "59.99"
    assert record.bill_description == "Internet: $59.99"


def test_default_registry_returns_fresh_unbound_parsers() -> None:
    first, second = default_registry(), default_registry()
    first[0].label_id = "L1"

    assert [p.label_name for p in first] == ["Bills/Electric", "Bills/Water", "Bills/Internet"]
    assert all(p.label_id is None for p in second)


def test_registry_from_names_filters_by_label() -> None:
    assert [p.label_name for p in registry_from_names(["Bills/Water", " "])] == ["Bills/Water"]
    assert len(registry_from_names([])) == 3
