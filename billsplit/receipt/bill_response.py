"""Parse the language model's structured bill reply and apply it to a Bill."""

from __future__ import annotations

import json
import re
from decimal import Decimal

from pydantic import BaseModel, Field, ValidationError

from billsplit.domain.bill import Bill, LineItem
from billsplit.runtime import get_logger

logger = get_logger(__name__)

BILL_PARSER_INSTRUCTIONS = """\
You are a receipt parser. You will be given all of the text extracted from the receipt in a | delimited list of items.

Evaluate each piece of text to determine the item and the cost.
Not all pieces of text provided will be relevant, ignore headers and footers and other things that would not be relevant for parsing a receipt for the use case of splitting it with friends.

Your task is to extract:
- The name of the bill (usually the vendor or a short description)
- The total amount
- A list of items with their names and prices
- Tax, Tip, and other Fees as separate values (not as items)

Normalization:
- Normalize numbers by removing currency symbols and commas.
- If a value is missing or cannot be determined, set it to 0.

Output Requirements:
1. Only output valid JSON, with no extra text, comments, or Markdown formatting.
2. All keys and string values must use double quotes.
3. Prices and amounts must be numbers (no currency symbols).
4. Do not include any of the coordinate data in your output.
5. The total of all items plus tax, tip, and fees should equal the amount of the bill.
6. Tax, Tip, and Fees must be in their own fields, not represented as items.
7. The JSON must match this structure exactly:

{
  "bill": {
    "name": "string",
    "amount": number,
    "items": [
      { "name": "string", "price": number }
    ],
    "tax": number,
    "tip": number,
    "fees": number
  }
}

8. Do not make up any items that are not specifically included in the input.
"""

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


class MalformedBillResponse(ValueError):
    """Raised when the model reply is not valid JSON in the bill schema."""

    def __init__(self, message: str, raw_response: str) -> None:
        super().__init__(message)
        self.raw_response = raw_response


class BillItemData(BaseModel):
    name: str
    price: Decimal = Field(ge=0)


class BillData(BaseModel):
    name: str
    amount: Decimal = Field(ge=0)
    items: list[BillItemData]
    tax: Decimal = Field(ge=0)
    tip: Decimal = Field(ge=0)
    fees: Decimal = Field(ge=0)


class BillResponse(BaseModel):
    bill: BillData


def strip_code_fences(raw_response: str) -> str:
    """Remove Markdown fences and any prose around the outermost JSON object."""
    content = _FENCE_PATTERN.sub("", raw_response).strip()
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end < start:
        return content
    return content[start : end + 1]


def parse_bill_response(raw_response: str) -> BillData:
    """
    Validate a model reply against the bill schema.

    Numbers are parsed straight into Decimal so prices keep the digits the
    model wrote.

    Raises:
        MalformedBillResponse: If the reply is not JSON or does not match the schema
    """
    content = strip_code_fences(raw_response)
    try:
        payload = json.loads(content, parse_float=Decimal)
    except json.JSONDecodeError as exc:
        raise MalformedBillResponse(f"Bill response is not valid JSON: {exc}", raw_response) from exc

    try:
        return BillResponse.model_validate(payload).bill
    except ValidationError as exc:
        raise MalformedBillResponse(
            f"Bill response does not match schema ({exc.error_count()} errors)", raw_response
        ) from exc


def populate_bill(bill: Bill, raw_response: str) -> Bill:
    """
    Apply a model reply to ``bill``.

    The raw reply is always kept on ``bill.ai_response``. When the reply is
    malformed every other field is left untouched and the error is re-raised.
    Parsed items start unassigned.

    Raises:
        MalformedBillResponse: If the reply cannot be parsed
    """
    bill.ai_response = raw_response
    try:
        data = parse_bill_response(raw_response)
    except MalformedBillResponse as exc:
        logger.warning("Could not parse bill response: %s", exc)
        logger.debug("Raw bill response: %s", raw_response)
        raise

    bill.name = data.name
    bill.declared_amount = data.amount
    bill.items = [LineItem(name=item.name, price=item.price) for item in data.items]
    bill.tax = data.tax
    bill.tip = data.tip
    bill.fees = data.fees
    logger.info("Parsed bill %r with %d items", bill.name, len(bill.items))
    return bill
