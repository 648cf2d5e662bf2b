"""
Audit logging for adminrelay.

This package records the admin live chat session lifecycle and relayed
messages as JSON Lines.
"""

from adminrelay.audit.logger import AuditEventType, AuditLogger

__all__ = ["AuditEventType", "AuditLogger"]
