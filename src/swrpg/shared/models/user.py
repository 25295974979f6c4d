"""User record model with DynamoDB keys.

The record is owned by the identity service; the policy engine only reads it
and, through the admin guard, writes its roles, status and audit fields.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.swrpg.shared.auth.enums import Role, UserStatus


class UserRecord(BaseModel):
    """Platform user as stored in the users table."""

    user_id: str = Field(..., description="User ID")
    username: str | None = None
    email: str | None = None

    # Authorization state
    roles: list[str] = Field(default_factory=lambda: [Role.USER.value])
    status: UserStatus = UserStatus.ACTIVE
    status_reason: str | None = None

    # Audit
    created_at: datetime | None = None
    last_active_at: datetime | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None

    @property
    def pk(self) -> str:
        """DynamoDB partition key."""
        return f"USER#{self.user_id}"

    @property
    def sk(self) -> str:
        """DynamoDB sort key."""
        return "PROFILE"

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format.

        Optional attributes are omitted when None.
        """
        item = {
            "PK": self.pk,
            "SK": self.sk,
            "user_id": self.user_id,
            "roles": list(self.roles),
            "status": self.status.value,
            "entity_type": "USER",
        }
        for name in ("username", "email", "status_reason", "updated_by"):
            value = getattr(self, name)
            if value is not None:
                item[name] = value
        for name in ("created_at", "last_active_at", "updated_at"):
            value = getattr(self, name)
            if value is not None:
                item[name] = value.isoformat()
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "UserRecord":
        """Create UserRecord from DynamoDB item.

        Records written before roles/status existed default to
        ["user"] and active.
        """

        def _dt(name: str) -> datetime | None:
            value = item.get(name)
            return datetime.fromisoformat(value) if value else None

        return cls(
            user_id=item["user_id"],
            username=item.get("username"),
            email=item.get("email"),
            roles=list(item.get("roles") or [Role.USER.value]),
            status=item.get("status") or UserStatus.ACTIVE,
            status_reason=item.get("status_reason"),
            created_at=_dt("created_at"),
            last_active_at=_dt("last_active_at"),
            updated_at=_dt("updated_at"),
            updated_by=item.get("updated_by"),
        )
