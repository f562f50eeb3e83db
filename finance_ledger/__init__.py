"""
Finance Ledger - Source Package

A single-user personal finance ledger and planning engine. Accounts and
their balance history live in one encrypted state file on local disk.

DESIGN PRINCIPLES:
1. Every operation loads, mutates a private copy, then persists
2. Fail early, fail visibly (decryption errors are never silent)
3. Merges are reversible on a best-effort basis
4. Every significant step is audited
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Ledger Team"
