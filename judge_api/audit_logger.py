"""
Audit logging for admin actions
===============================
Every admin mutation (problem and playlist changes) is written to the
`judge_api.audit` logger with the acting user, the client address and the
action metadata, so it can be routed to its own handler in production.
"""
import json
import logging
from typing import Dict, Optional

from fastapi import Request

audit_log = logging.getLogger("judge_api.audit")


def log_admin_action(
    user_id: str,
    action: str,
    request: Optional[Request] = None,
    metadata: Optional[Dict] = None,
    success: bool = True
) -> None:
    """
    Log an admin action.

    Args:
        user_id: ID of the admin performing the action
        action: Action being performed (e.g. 'create_problem', 'delete_playlist')
        request: Request the action came from, for the client address
        metadata: Additional metadata (e.g. problem_id)
        success: Whether the action was successful
    """
    ip_address = request.client.host if request is not None and request.client else "unknown"
    level = logging.INFO if success else logging.WARNING
    audit_log.log(
        level,
        "ADMIN AUDIT: user=%s action=%s success=%s ip=%s metadata=%s",
        user_id, action, success, ip_address, json.dumps(metadata or {}, default=str),
    )
