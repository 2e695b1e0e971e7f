"""Best-effort audit trail in ``user_activity_logs``."""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def log_activity(
    client,
    user_id: Optional[str],
    action_type: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Record a user action.

    Failures are logged and never propagate: auditing must not break the
    action being audited.

    Returns:
        True when the row was written
    """
    if not user_id:
        logger.debug(f"Skipping activity {action_type}: no user")
        return False

    row = {
        "user_id": user_id,
        "action_type": action_type,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "details": details or {},
    }

    try:
        client.table("user_activity_logs").insert(row, returning=False).execute()
    except Exception as e:
        logger.warning(f"Failed to log activity {action_type}: {e}")
        return False

    return True
