"""FastAPI server for scanning receipts into bills and splitting them."""

import asyncio
import tempfile
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from billsplit.application.receipts.scan import BillScanRequest, run_bill_scan
from billsplit.domain.bill import Bill, LineItem, Participant
from billsplit.receipt.formatter import bill_to_dict
from billsplit.runtime import get_logger
from billsplit.runtime.settings import DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT

logger = get_logger(__name__)

_SCAN_STATUS_CODES = {
    "parsed": 200,
    "malformed_response": 422,
    "llm_unavailable": 502,
    "file_not_found": 400,
}


class SplitItem(BaseModel):
    name: str
    price: Decimal = Field(ge=0)
    split_with: list[str] = Field(default_factory=list)


class SplitRequest(BaseModel):
    """A bill in the parser schema, plus who shares each item."""

    name: str = ""
    amount: Decimal = Decimal("0")
    items: list[SplitItem] = Field(default_factory=list)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    tip: Decimal = Field(default=Decimal("0"), ge=0)
    fees: Decimal = Field(default=Decimal("0"), ge=0)
    participants: list[str] = Field(default_factory=list)


app = FastAPI(title="Bill Split")


def build_bill(payload: SplitRequest) -> Bill:
    """Build a Bill from a split request; participant names must be unique."""
    people = {name: Participant(name=name) for name in payload.participants}
    if len(people) != len(payload.participants):
        raise ValueError("Participant names must be unique")

    items = []
    for item in payload.items:
        unknown = [name for name in item.split_with if name not in people]
        if unknown:
            raise ValueError(f"Item {item.name!r} is split with unknown participants: {', '.join(unknown)}")
        items.append(LineItem(name=item.name, price=item.price, split_with={people[name] for name in item.split_with}))

    return Bill(
        name=payload.name,
        declared_amount=payload.amount,
        items=items,
        tax=payload.tax,
        tip=payload.tip,
        fees=payload.fees,
        participants=set(people.values()),
    )


@app.post("/bills/split")
async def split_bill(payload: SplitRequest) -> JSONResponse:
    """Compute what each participant owes on a bill."""
    try:
        bill = build_bill(payload)
    except ValueError as e:
        return JSONResponse({"status": "error", "message": str(e)}, status_code=400)
    return JSONResponse({"status": "success", "bill": bill_to_dict(bill)})


@app.post("/bills/scan")
async def scan_bill(request: Request) -> JSONResponse:
    """Receive a receipt image and return the parsed bill."""
    form = await request.form()

    file = None
    for key, value in form.multi_items():
        logger.debug("Form field: key=%r, type=%s", key, type(value))
        if hasattr(value, "read"):
            file = value
            break

    if not file:
        return JSONResponse({"status": "error", "message": "No file found in request"}, status_code=400)

    people = tuple(Participant(name=str(name)) for name in form.getlist("person") if str(name).strip())

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    file_filename = getattr(file, "filename", None)
    ext = Path(file_filename).suffix if file_filename else ".jpg"
    contents = await file.read()

    with tempfile.TemporaryDirectory(prefix="billsplit_") as tmpdir:
        image_path = Path(tmpdir) / f"receipt_{timestamp}{ext}"
        image_path.write_bytes(contents)
        result = await asyncio.to_thread(run_bill_scan, BillScanRequest(image_path=image_path, participants=people))

    logger.info("Scan finished with status %s", result.status)
    body = {
        "status": result.status,
        "bill": bill_to_dict(result.bill),
        "extracted_text": result.bill.extracted_text,
        "ai_response": result.bill.ai_response,
        "error": result.error,
        "ocr_error": result.ocr_error,
    }
    return JSONResponse(body, status_code=_SCAN_STATUS_CODES.get(result.status, 500))


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=DEFAULT_SERVER_HOST, port=DEFAULT_SERVER_PORT)
