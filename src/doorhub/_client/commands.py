"""Door command helpers for :class:`doorhub.client.DoorHubClient`.

These are the request/response calls the older web UI makes. They never
raise for command failures; a failed lock comes back as an unsuccessful
:class:`DoorCommandResult` and an unanswered door-info query as ``None``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from doorhub._constants import ACK_LOCK, ACK_UNLOCK, DEFAULT_ACTION, DEFAULT_TARGET, STATUS_PREFIX
from doorhub.exceptions import DoorHubCommandError, DoorHubError
from doorhub.ingestion.normalize import scan_door_tokens
from doorhub.models.command import CommandFeedback, DoorCommandResult, DoorInfo

if TYPE_CHECKING:
    from doorhub.client import DoorHubClient

_logger = logging.getLogger(__name__)


def coerce_module_id(module_id: str | int) -> str:
    """``5`` and ``"5"`` become ``"D5"``; ``"D5"`` is returned as is."""
    text = str(module_id).strip()
    return text if text.startswith("D") else f"D{text}"


def door_info_from_feedback(feedback: CommandFeedback) -> DoorInfo:
    """Build the legacy door-info answer from a STATUS reply.

    Unknown fields are reported as ``False``, which is what the older UI
    expects.
    """
    upper = feedback.raw_action.strip().upper()
    if upper.startswith(STATUS_PREFIX):
        tokens = upper[len(STATUS_PREFIX) :]
    elif "OPEN" in upper or "CLOSED" in upper:
        tokens = upper
    else:
        tokens = ""
    door_token, lock_token = scan_door_tokens(tokens)
    return DoorInfo(
        module_id=feedback.module_id,
        target=feedback.target,
        status=feedback.raw_action,
        front_door_open=door_token == "OPEN",
        front_lock_locked=lock_token == "LOCKED",
    )


async def _door_command(client: DoorHubClient, module_id: str | int, action: str) -> DoorCommandResult:
    module = coerce_module_id(module_id)
    try:
        feedback = await client.send_command(module, DEFAULT_TARGET, action)
    except DoorHubError as exc:
        _logger.info("%s for %s failed: %s", action, module, exc)
        return DoorCommandResult(
            success=False,
            action=action,
            module_id=module,
            correlation_id=exc.correlation_id if isinstance(exc, DoorHubCommandError) else None,
            error=str(exc),
        )
    return DoorCommandResult(
        success=True,
        action=action,
        module_id=module,
        correlation_id=feedback.correlation_id,
    )


async def lock(client: DoorHubClient, module_id: str | int) -> DoorCommandResult:
    return await _door_command(client, module_id, ACK_LOCK)


async def unlock(client: DoorHubClient, module_id: str | int) -> DoorCommandResult:
    return await _door_command(client, module_id, ACK_UNLOCK)


async def get_door_info(client: DoorHubClient, module_id: str | int) -> DoorInfo | None:
    module = coerce_module_id(module_id)
    try:
        feedback = await client.send_command(module, DEFAULT_TARGET, DEFAULT_ACTION)
    except DoorHubError as exc:
        _logger.debug("Door info for %s unavailable: %s", module, exc)
        return None
    return door_info_from_feedback(feedback)
