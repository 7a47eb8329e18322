"""Audit logging package."""

from paycheck_planner.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
