"""Access control for the AI Chat feature.

Root accounts (and users without a group) always have access. Everyone
else needs their group to hold the "AI Chat" module permission. If the
module has not been provisioned yet, or the lookup itself fails, access is
allowed and a warning is logged.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ehr_assistant import db
from ehr_assistant.errors import PermissionDenied

logger = logging.getLogger(__name__)

AI_CHAT_MODULE = "AI Chat"
PERMISSION_DENIED_MESSAGE = "You do not have permission to use the AI Chat feature"

# (group_id, module_name) -> True/False, or None when the module doesn't exist.
PermissionLookup = Callable[[str, str], Awaitable[bool | None]]


@dataclass(frozen=True)
class UserContext:
    user_id: str
    email: str
    account_type: str
    group_id: str | None = None


async def lookup_module_access(group_id: str, module_name: str) -> bool | None:
    """Read the group's module permission from the clinic database."""
    modules = await db.fetch('SELECT id FROM "Module" WHERE name = $1 LIMIT 1', module_name)
    if not modules:
        return None

    rows = await db.fetch(
        'SELECT "hasAccess" FROM "GroupModulePermission" '
        'WHERE "groupId" = $1 AND "moduleId" = $2',
        group_id,
        modules[0]["id"],
    )
    return bool(rows and rows[0]["hasAccess"])


async def check_chat_permission(
    user: UserContext,
    lookup: PermissionLookup = lookup_module_access,
) -> None:
    """Raise PermissionDenied unless ``user`` may use the AI chat."""
    if user.account_type == "root" or not user.group_id:
        return

    try:
        has_access = await lookup(user.group_id, AI_CHAT_MODULE)
    except PermissionDenied:
        raise
    except Exception as exc:
        logger.warning(
            "[Permissions] lookup failed for user %s, allowing access: %s", user.user_id, exc
        )
        return

    if has_access is None:
        logger.warning("[Permissions] %s module not found, allowing access", AI_CHAT_MODULE)
        return
    if not has_access:
        raise PermissionDenied(PERMISSION_DENIED_MESSAGE)
