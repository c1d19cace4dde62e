"""
iBudget - Security and Export Core

The non-UI core of a personal expense tracker with biometric-gated
access: an in-memory expense ledger, an advisory failed-login tracker,
and AES-GCM sealed snapshots of the ledger for (simulated) export.

DESIGN PRINCIPLES:
1. Bad input is reported, never fatal
2. No unauthenticated plaintext ever leaves the codec
3. One explicit session object owns all mutable state
4. Every significant action is auditable
5. Secrets never reach logs
"""

__version__ = "1.0.0"
__author__ = "iBudget Team"
