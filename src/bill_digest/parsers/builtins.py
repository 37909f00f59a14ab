from __future__ import annotations

from bill_digest.errors import BillParseError
from bill_digest.models import BillRecord, MessageDetail
from bill_digest.parsers.base import BaseParser

AMOUNT = r"\$?\s*(-?[\d,]+(?:\.\d{1,2})?)"


class ElectricBillParser(BaseParser):
    """Plain-text statement notice with the PDF bill attached."""

    label_name = "Bills/Electric"
    display_name = "Electric"
    amount_patterns = (
        rf"amount due[:\s]*{AMOUNT}",
        rf"total (?:amount )?due[:\s]*{AMOUNT}",
        rf"please pay[:\s]*{AMOUNT}",
    )

    def parse_email(self, detail: MessageDetail) -> BillRecord:
        text = self.body_text(detail)
        amount = self.find_amount(text)
        due_date = self.regex(text, r"due (?:date|by|on)[:\s]*([A-Za-z]+\.? \d{1,2},? \d{4}|\d{1,2}/\d{1,2}/\d{2,4})")
        file_name, file_data = self.first_attachment(detail)

        description = self.describe(amount)
        if due_date:
            description += f" (due {due_date})"
        return BillRecord(
            bill_amount=amount,
            bill_description=description,
            file_name=file_name,
            file_data=file_data,
            extra={"due_date": due_date, "message_id": detail.id},
        )


class WaterBillParser(BaseParser):
    """HTML e-bill; the amount sits in a table cell next to its caption."""

    label_name = "Bills/Water"
    display_name = "Water"
    amount_patterns = (
        rf"total amount due[:\s]*{AMOUNT}",
        rf"amount due[:\s]*{AMOUNT}",
        rf"current charges[:\s]*{AMOUNT}",
    )

    def parse_email(self, detail: MessageDetail) -> BillRecord:
        if not detail.body:
            raise BillParseError(f"{self.display_name}: message {detail.id} has no body")

        text = self.body_text(detail)
        amount = self.find_amount(text)
        account = self.regex(text, r"account (?:number|#|no\.?)[:\s]*([\w-]*\d[\w-]*)")
        file_name, file_data = self.first_attachment(detail)
        return BillRecord(
            bill_amount=amount,
            bill_description=self.describe(amount),
            file_name=file_name,
            file_data=file_data,
            extra={"account": account, "message_id": detail.id},
        )


class InternetBillParser(BaseParser):
    label_name = "Bills/Internet"
    display_name = "Internet"
    amount_patterns = (
        rf"balance(?: due)?[:\s]*{AMOUNT}",
        rf"(?:monthly )?total[:\s]*{AMOUNT}",
    )

    def parse_email(self, detail: MessageDetail) -> BillRecord:
        amount = self.find_amount(self.body_text(detail))
        return BillRecord(
            bill_amount=amount,
            bill_description=self.describe(amount),
            extra={"message_id": detail.id},
        )
