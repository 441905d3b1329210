"""Application workflows composed from domain, receipt and runtime pieces."""
