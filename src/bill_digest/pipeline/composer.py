from __future__ import annotations

import html
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from bill_digest.models import AggregateReport, BillRecord, ReportAttachment

CENTS = Decimal("0.01")
RULE = "-" * 56


def format_total(total: Decimal) -> str:
    return str(total.quantize(CENTS, rounding=ROUND_HALF_UP))


def compose_report(
    records: Iterable[BillRecord],
    *,
    since: date,
    now: Optional[datetime] = None,
) -> AggregateReport:
    """
    Fold bill records into the summary mail: text + HTML renderings and the attachment list.
    Pure: depends only on the records, since and now.
    """
    now = now or datetime.now()
    title = f"Utility Bill for {now.strftime('%B %Y')}"
    ran_on = now.strftime("%m/%d/%Y")
    looked_after = since.strftime("%m/%d/%Y")

    total = Decimal("0")
    attachments: List[ReportAttachment] = []
    text_lines: List[str] = [title]
    html_items: List[str] = []

    for record in records:
        total += Decimal(str(record.bill_amount))
        text_lines.append(f"* {record.bill_description}")
        html_items.append(f"<li>{html.escape(record.bill_description)}</li>")

        if record.has_attachment:
            attachments.append(
                ReportAttachment(
                    filename=record.file_name,
                    content=record.file_data,
                    encoding="base64",
                )
            )

    total_str = format_total(total)
    footer = (
        f"This bill was auto-generated and ran on {ran_on}. "
        f"It looked for any new bills that came in a month ago after {looked_after}"
    )

    text_lines.append("")
    text_lines.append(f"Total: ${total_str}")
    text_lines.append(RULE)
    text_lines.append(footer)
    text = "\n".join(text_lines)

    html_parts = [f"<h2>{html.escape(title)}</h2>", "<ul>", *html_items, "</ul>"]
    body_html = "\n".join(html_parts)
    body_html += f"<br/><div>Total: <b>${total_str}</b></div>"
    body_html += f"<div>{RULE}</div>"
    body_html += f"<div>{html.escape(footer)}</div>"

    return AggregateReport(
        text=text,
        html=body_html,
        attachments=attachments,
        total=total.quantize(CENTS, rounding=ROUND_HALF_UP),
    )
