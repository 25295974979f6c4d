"""Canonical enum definitions for the authorization policy engine.

This module defines the closed vocabularies used throughout the platform:
roles, permissions and account statuses. Guards validate their arguments
against these sets at decoration time to catch typos early.

All auth-related enums should be defined here to ensure a single source of truth.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Canonical user roles, listed from least to most privileged.

    The privilege ordering itself lives in the RoleCatalog as an explicit
    rank per role; member order here is not consulted.
    """

    GUEST = "guest"
    USER = "user"
    PREMIUM = "premium"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class Permission(StrEnum):
    """Capability tags gating one class of operation each."""

    # Basic
    READ_PUBLIC_CONTENT = "read_public_content"
    CREATE_SESSION = "create_session"
    GENERATE_CONTENT = "generate_content"

    # Premium
    ADVANCED_GENERATION = "advanced_generation"
    BATCH_GENERATION = "batch_generation"
    EXPORT_DATA = "export_data"
    CUSTOM_TEMPLATES = "custom_templates"

    # Moderation
    VIEW_USER_ACTIVITY = "view_user_activity"
    MODERATE_CONTENT = "moderate_content"
    MANAGE_REPORTS = "manage_reports"

    # Administration
    MANAGE_USERS = "manage_users"
    VIEW_SYSTEM_STATS = "view_system_stats"
    CONFIGURE_SYSTEM = "configure_system"

    # Super admin only
    MANAGE_ROLES = "manage_roles"
    ACCESS_DATABASE = "access_database"
    SYSTEM_MAINTENANCE = "system_maintenance"


class UserStatus(StrEnum):
    """Account status stored on the user record."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    BANNED = "banned"


# Immutable sets for O(1) validation at decoration time
VALID_ROLES: frozenset[str] = frozenset(role.value for role in Role)
VALID_PERMISSIONS: frozenset[str] = frozenset(p.value for p in Permission)
VALID_STATUSES: frozenset[str] = frozenset(s.value for s in UserStatus)
