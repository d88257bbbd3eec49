"""
Financial ledger and two-level distribution engine.

Tracks wallet balances, computes and settles referral commissions and
drives the withdrawal approval workflow.
"""

__version__ = "0.1.0"
