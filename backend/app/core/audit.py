"""Audit trail for account, wishlist and claim events."""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any

from fastapi import Request


logger = logging.getLogger("wishlist.audit")

_REDACTED_KEYS = {"password", "token", "secret", "key", "authorization"}


class AuditAction(str, Enum):
    REGISTER = "register"
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"

    WISHLIST_CREATE = "wishlist_create"
    WISHLIST_UPDATE = "wishlist_update"
    WISHLIST_DELETE = "wishlist_delete"

    ITEM_CREATE = "item_create"
    ITEM_UPDATE = "item_update"
    ITEM_DELETE = "item_delete"

    CLAIM_CREATE = "claim_create"
    CLAIM_CONFLICT = "claim_conflict"
    OWNER_SELF_VIEW_BLOCKED = "owner_self_view_blocked"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"


def audit_log(
    action: AuditAction,
    request: Request | None = None,
    user_id: int | str | None = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """
    Log an audit event.

    Args:
        action: The action being performed
        request: Request the action arrived on (client address, user agent)
        user_id: Recipient performing the action, when authenticated
        details: Extra fields; sensitive keys are redacted
        success: Whether the action went through
    """
    event: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action.value,
        "success": success,
    }
    if user_id is not None:
        event["user_id"] = str(user_id)

    if request is not None:
        client_host = request.client.host if request.client else None
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_host = forwarded.split(",")[0].strip()
        event["ip"] = client_host
        event["user_agent"] = request.headers.get("User-Agent", "")[:200]
        event["request_id"] = request.headers.get("X-Request-Id", "")

    if details:
        event["details"] = {
            key: "***REDACTED***" if key in _REDACTED_KEYS else value
            for key, value in details.items()
        }

    if success:
        logger.info("AUDIT: %s", event)
    else:
        logger.warning("AUDIT: %s", event)


def audit_register(request: Request, user_id: int, email: str) -> None:
    audit_log(AuditAction.REGISTER, request=request, user_id=user_id, details={"email": email})


def audit_login_success(request: Request, user_id: int, email: str) -> None:
    audit_log(AuditAction.LOGIN, request=request, user_id=user_id, details={"email": email})


def audit_login_failed(request: Request, email: str, reason: str) -> None:
    audit_log(
        AuditAction.LOGIN_FAILED,
        request=request,
        details={"email": email, "reason": reason},
        success=False,
    )


def audit_logout(request: Request, user_id: int | None) -> None:
    audit_log(AuditAction.LOGOUT, request=request, user_id=user_id)


def audit_wishlist_action(
    action: AuditAction,
    request: Request,
    user_id: int,
    wishlist_id: int,
    details: dict[str, Any] | None = None,
) -> None:
    event_details: dict[str, Any] = {"wishlist_id": wishlist_id}
    if details:
        event_details.update(details)
    audit_log(action, request=request, user_id=user_id, details=event_details)


def audit_item_action(
    action: AuditAction,
    request: Request,
    user_id: int,
    item_id: int,
    wishlist_id: int,
) -> None:
    audit_log(
        action,
        request=request,
        user_id=user_id,
        details={"item_id": item_id, "wishlist_id": wishlist_id},
    )


def audit_claim(
    request: Request,
    share_token: str,
    item_id: int,
    gifter_name: str | None,
    success: bool,
) -> None:
    audit_log(
        AuditAction.CLAIM_CREATE if success else AuditAction.CLAIM_CONFLICT,
        request=request,
        details={"share_token": share_token, "item_id": item_id, "gifter_name": gifter_name},
        success=success,
    )


def audit_owner_self_view(request: Request, user_id: int, share_token: str) -> None:
    audit_log(
        AuditAction.OWNER_SELF_VIEW_BLOCKED,
        request=request,
        user_id=user_id,
        details={"share_token": share_token},
        success=False,
    )


def audit_rate_limited(request: Request, client_id: str, retry_after: int) -> None:
    audit_log(
        AuditAction.RATE_LIMIT_EXCEEDED,
        request=request,
        details={"client": client_id, "path": request.url.path, "retry_after": retry_after},
        success=False,
    )
