"""Kernel services: session-bound writers that flush but never commit."""

from qm_kernel.services.audit_trail import AuditTrace, AuditTrail, diff_fields
from qm_kernel.services.base import BaseService

__all__ = ["AuditTrace", "AuditTrail", "BaseService", "diff_fields"]
