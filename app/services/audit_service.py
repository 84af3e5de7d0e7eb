"""Audit trail — AuditLog rows plus the loguru audit channel.

The rows double as the source for the user dashboard activity and
notification feeds (services/dashboard_service.py).

Usage:
    from app.services.audit_service import record_audit
    record_audit(db, "Property created", user_id=user.id,
                 resource_type="property", resource_id=prop.id,
                 new_values={"address": prop.address}, request=request)
"""

from fastapi import Request
from sqlalchemy.orm import Session

from ..logging_config import audit
from ..models import AuditLog
from ..rate_limit import client_ip


def record_audit(
    db: Session,
    action: str,
    *,
    user_id: int | None = None,
    resource_type: str | None = None,
    resource_id=None,
    old_values: dict | None = None,
    new_values: dict | None = None,
    request: Request | None = None,
    commit: bool = True,
) -> AuditLog:
    row = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        old_values=old_values,
        new_values=new_values,
        ip_address=client_ip(request) if request else None,
        user_agent=request.headers.get("user-agent") if request else None,
    )
    db.add(row)
    if commit:
        db.commit()
    audit(
        action,
        user_id=user_id,
        resource_type=resource_type,
        resource_id=row.resource_id,
    )
    return row
