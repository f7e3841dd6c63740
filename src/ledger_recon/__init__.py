"""
Statement import → Duplicate detection → Staging review → Ledger

A deterministic, testable reconciliation engine that normalizes imported
transactions, scores them against the existing ledger, and holds ambiguous
rows in a staging area until a reviewer approves, merges or rejects them.
"""

__version__ = "0.1.0"
