"""Data models for the users table."""

from src.swrpg.shared.models.user import UserRecord

__all__ = ["UserRecord"]
