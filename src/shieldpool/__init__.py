"""
shieldpool: a shielded pool ledger.

Public tokens are deposited into a pool as hidden coins, moved between
owners with Groth16 proofs over BLS12-381 and reclaimed to public balances.
"""

__version__ = "0.1.0"
