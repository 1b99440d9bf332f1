"""
Chat Ledger - Source Package

A conversational ledger that turns chat messages into transaction
records, budget checks and account operations.

DESIGN PRINCIPLES:
1. AI extracts → Resolver validates → Router executes
2. Destructive actions need an explicit second message
3. The language model never names a destructive command
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Chat Ledger Team"
