"""
Two-tier dashboard access.

Every mutating admin operation takes an ``AccessLevel``. The services never
see how it was obtained; ``resolve_access_level`` maps one of two shared
secrets to a level.
"""
from __future__ import annotations

import enum
import hmac
import logging
from typing import Optional

from symposium.config import settings
from symposium.errors import PermissionDenied

logger = logging.getLogger(__name__)


class AccessLevel(str, enum.Enum):
    ADMIN  = "admin"   # full read / write
    VIEWER = "viewer"  # read-only dashboard


def _matches(candidate: str, secret: str) -> bool:
    if not secret:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


def resolve_access_level(
    secret: str,
    admin_secret: Optional[str] = None,
    viewer_secret: Optional[str] = None,
) -> Optional[AccessLevel]:
    """Map a presented secret to an access level. None when it matches neither."""
    admin_secret  = settings.ADMIN_SECRET if admin_secret is None else admin_secret
    viewer_secret = settings.VIEWER_SECRET if viewer_secret is None else viewer_secret

    if _matches(secret, admin_secret):
        return AccessLevel.ADMIN
    if _matches(secret, viewer_secret):
        return AccessLevel.VIEWER
    logger.info("Dashboard unlock attempt with an unknown secret")
    return None


def can_write(access: Optional[AccessLevel]) -> bool:
    return access == AccessLevel.ADMIN


def require_write(access: Optional[AccessLevel], action: str) -> Optional[PermissionDenied]:
    """PermissionDenied for anything below ADMIN, None when allowed."""
    if can_write(access):
        return None
    logger.warning("Blocked %s for access level %s", action, getattr(access, "value", access))
    return PermissionDenied(action=action)
