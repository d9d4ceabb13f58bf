"""
PPE Issuance Kernel

Issuance and inventory reconciliation for personal protective equipment:
- Capacity-controlled issuance with 1-for-1 replacement workflow
- Atomic commit of assignments, stock decrements and audit entries
- Stock movement ledger with reconciliation
- Per-employee assignment history
"""

__version__ = "0.1.0"
