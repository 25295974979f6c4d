"""Audit field helpers for admin mutations.

Every write to a user's roles or status is stamped with when it happened and
which principal made it.
"""

from datetime import UTC, datetime


def create_update_audit_entry(actor_id: str | None) -> dict[str, str | None]:
    """Create the audit fields for a user record update.

    Args:
        actor_id: ID of the principal performing the update

    Returns:
        Dict with updated_at (ISO 8601 UTC) and updated_by

    Examples:
        >>> create_update_audit_entry("admin-user-123")
        {'updated_at': '2026-01-08T12:00:00+00:00', 'updated_by': 'admin-user-123'}
    """
    now = datetime.now(UTC)
    return {
        "updated_at": now.isoformat(),
        "updated_by": actor_id,
    }
