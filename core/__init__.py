"""Matching, enrollment, attendance ledger and reporting services."""
