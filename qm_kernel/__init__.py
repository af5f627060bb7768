"""
Quartermaster Kernel

Persistence, domain types, and audit plumbing for the quartermaster
reconciliation and execution core:
- Derived PO and QMHQ statuses
- Two-layer stock-out approval and all-or-nothing execution
- Budget figures that stay consistent across PO cancel/unlock
- Append-only field-level audit log
"""

__version__ = "0.1.0"
