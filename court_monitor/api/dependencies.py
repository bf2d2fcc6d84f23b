"""Dependency injection for FastAPI endpoints"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from court_monitor.domain.models import AuditEntry
from court_monitor.infrastructure.clients.documents import DocumentStore
from court_monitor.infrastructure.database.session import SessionLocal
from court_monitor.services.audit import AuditLogWriter


@dataclass
class Actor:
    """Caller identity as forwarded by the upstream gateway"""

    user_id: Optional[int] = None
    user_name: str = "system"
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def audit_entry(
        self,
        client_id: int,
        action_type: str,
        field_name: str | None = None,
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> AuditEntry:
        return AuditEntry(
            client_id=client_id,
            action_type=action_type,
            user_id=self.user_id,
            user_name=self.user_name,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
        )


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor(request: Request) -> Actor:
    """Build the acting user from gateway headers, falling back to "system" """
    raw_id = request.headers.get("X-User-Id")
    user_id = int(raw_id) if raw_id and raw_id.isdigit() else None
    return Actor(
        user_id=user_id,
        user_name=request.headers.get("X-User-Name") or "system",
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent"),
    )


def get_document_store() -> DocumentStore:
    """Provide blob store client instance"""
    return DocumentStore()


def get_audit_writer() -> AuditLogWriter:
    """Provide audit writer bound to its own sessions"""
    return AuditLogWriter(SessionLocal)
