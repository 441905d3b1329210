"""Receipt workflows."""

from billsplit.application.receipts.scan import BillScanRequest, BillScanResult, run_bill_scan

__all__ = [
    "BillScanRequest",
    "BillScanResult",
    "run_bill_scan",
]
