"""Unified command-line interface for billsplit.

Usage:
    billsplit scan <image> [--person NAME ...]
    billsplit assemble <ocr-json> [--lines]
    billsplit split <bill-json> [--person NAME ...] [--tip 20%]
    billsplit serve [--port]
"""
