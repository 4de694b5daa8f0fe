"""
Audit trail for prescription, consent and patient-summary access.

Rows are added to the caller's session and flushed, so they commit or
roll back together with the change they describe.
"""

from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.models.audit_log import AuditAction, AuditLog


def _client_details(request: Optional[Request]) -> tuple[Optional[str], Optional[str]]:
    if request is None:
        return None, None
    host = request.client.host if request.client else None
    return host, request.headers.get("user-agent")


async def log_audit(
    db: AsyncSession,
    action: AuditAction,
    resource: str,
    resource_id=None,
    user_id=None,
    details: Optional[str] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    ip_address, user_agent = _client_details(request)
    entry = AuditLog(
        user_id=user_id,
        action=AuditAction(action),
        resource=resource,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    await db.flush()
    return entry

