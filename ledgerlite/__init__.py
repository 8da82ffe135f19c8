"""
LedgerLite - Source Package

A small personal finance ledger: record income and expense entries,
watch them update live, and get an AI-suggested category for each one.

DESIGN PRINCIPLES:
1. AI suggests → Human decides (suggestions are never enforced)
2. Incomplete entries are blocked before they reach storage
3. Storage layer is swappable
4. Remote failures are logged, never fatal
"""

__version__ = "1.0.0"
__author__ = "LedgerLite Team"
