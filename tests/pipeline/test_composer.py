from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from bill_digest.models import BillRecord
from bill_digest.pipeline.composer import compose_report

NOW = datetime(2026, 10, 19, 8, 30)
SINCE = date(2026, 9, 18)


def test_compose_report_sums_amounts_exactly() -> None:
    records = [
        BillRecord(bill_amount="12.5", bill_description="Electric: $12.50"),
        BillRecord(bill_amount="7.25", bill_description="Water: $7.25"),
    ]

    report = compose_report(records, since=SINCE, now=NOW)

    assert report.total == Decimal("19.75")
    assert "Total: $19.75" in report.text
    assert "<b>$19.75</b>" in report.html


def test_compose_report_avoids_float_drift() -> None:
    records = [BillRecord(bill_amount="0.1", bill_description=str(i)) for i in range(3)]
    report = compose_report(records, since=SINCE, now=NOW)
    assert str(report.total) == "0.30"


def test_compose_report_text_layout() -> None:
    records = [
        BillRecord(bill_amount="12.5", bill_description="Electric: $12.50"),
        BillRecord(bill_amount="7.25", bill_description="Water: $7.25"),
    ]

    report = compose_report(records, since=SINCE, now=NOW)

    lines = report.text.splitlines()
    assert lines[0] == "Utility Bill for October 2026"
    assert lines[1:3] == ["* Electric: $12.50", "* Water: $7.25"]
    assert lines[3] == ""
    assert lines[4] == "Total: $19.75"
    assert set(lines[5]) == {"-"}
    assert lines[6] == (
        "This bill was auto-generated and ran on 10/19/2026. "
        "It looked for any new bills that came in a month ago after 09/18/2026"
    )


def test_compose_report_html_escapes_descriptions() -> None:
    report = compose_report(
        [BillRecord(bill_amount="1", bill_description="Gas & <Power>")], since=SINCE, now=NOW
    )
    assert report.html.startswith("<h2>Utility Bill for October 2026</h2>")
    assert "<li>Gas &amp; &lt;Power&gt;</li>" in report.html


def test_compose_report_collects_only_complete_attachments() -> None:
    records = [
        BillRecord(bill_amount="1", bill_description="a", file_name="a.pdf", file_data="JVBERg=="),
        BillRecord(bill_amount="2", bill_description="b", file_name="b.pdf"),
        BillRecord(bill_amount="3", bill_description="c", file_data="JVBERg=="),
        BillRecord(bill_amount="4", bill_description="d"),
    ]

    report = compose_report(records, since=SINCE, now=NOW)

    assert len(report.attachments) == 1
    attachment = report.attachments[0]
    assert (attachment.filename, attachment.content, attachment.encoding) == ("a.pdf", "JVBERg==", "base64")


def test_compose_report_with_no_bills() -> None:
    report = compose_report([], since=SINCE, now=NOW)

    assert report.total == Decimal("0.00")
    assert report.attachments == []
    assert "Total: $0.00" in report.text
    assert report.text.startswith("Utility Bill for October 2026")
    assert "auto-generated" in report.text
    assert "<ul>\n</ul>" in report.html
