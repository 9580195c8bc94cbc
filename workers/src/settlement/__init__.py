"""
Settlement worker for the exchange back office.

Orders placed on the Coinbase Advanced Trade venue are recorded locally
as PENDING.  The worker in :mod:`settlement.reconcile_main` polls the
venue for each pending order, records the fill, and moves the user's
balances.  The operator tools under ``scripts/`` reuse the same store
and ledger code.
"""

__version__ = "0.1.0"
