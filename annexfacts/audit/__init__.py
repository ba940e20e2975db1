"""Sealed audit records for pipeline runs."""

from annexfacts.audit.builder import AuditRecordBuilder

__all__ = ["AuditRecordBuilder"]
