"""Extract field-update proposals from model replies.

The model is asked to answer edit-suggestion turns with a JSON object,
usually inside a ```json fence. Anything that doesn't parse into a valid
`update_fields` proposal is treated as ordinary chat: parsing never raises.
"""

import json
import re
from typing import Any, Optional

from pydantic import ValidationError

from altai.models.chat import ChatMode, FieldChange, FieldUpdateProposal, UPDATE_FIELDS_ACTION
from altai.services.exceptions import FieldUpdateParseError
from altai.utils.logging import get_logger


logger = get_logger(__name__)

JSON_FENCE_PATTERN = re.compile(r"```json\s*(\{.*?\})\s*```", re.DOTALL)
BARE_FENCE_PATTERN = re.compile(r"```\s*(\{.*?\})\s*```", re.DOTALL)


def _extract_json_text(reply: str) -> str:
    match = JSON_FENCE_PATTERN.search(reply) or BARE_FENCE_PATTERN.search(reply)
    if match:
        return match.group(1)
    return reply.strip()


def _decode_proposal(reply: str) -> FieldUpdateProposal:
    """
    Decode a reply into a proposal.

    Raises:
        FieldUpdateParseError: If the reply isn't an update_fields object
    """
    try:
        data: Any = json.loads(_extract_json_text(reply))
    except json.JSONDecodeError as e:
        raise FieldUpdateParseError(f"Reply is not JSON: {e}") from e

    if not isinstance(data, dict) or data.get("action") != UPDATE_FIELDS_ACTION:
        raise FieldUpdateParseError("Reply is not an update_fields object")

    raw_changes = data.get("changes")
    if not isinstance(raw_changes, list):
        raise FieldUpdateParseError("update_fields object has no changes list")

    changes = []
    for raw in raw_changes:
        if not isinstance(raw, dict) or not raw.get("field") or "proposed_value" not in raw:
            logger.debug("field_update_change_dropped", change=raw)
            continue
        try:
            changes.append(FieldChange.model_validate({
                "field": str(raw["field"]),
                "current_value": raw.get("current_value", ""),
                "proposed_value": raw["proposed_value"],
                "reason": str(raw.get("reason") or ""),
            }))
        except ValidationError as e:
            logger.debug("field_update_change_dropped", change=raw, error=str(e))

    message = data.get("message")
    return FieldUpdateProposal(
        message=message if isinstance(message, str) else "",
        changes=changes,
    )


def parse_field_updates(reply: str, mode: ChatMode = UPDATE_FIELDS_ACTION) -> Optional[FieldUpdateProposal]:
    """
    Parse a model reply into a field-update proposal.

    Args:
        reply: Raw assistant text
        mode: Mode of the turn; only "update_fields" turns carry proposals

    Returns:
        FieldUpdateProposal, or None if the reply is ordinary chat

    Example:
        >>> reply = '```json\\n{"action": "update_fields", "changes": []}\\n```'
        >>> parse_field_updates(reply).changes
        []
    """
    if mode != UPDATE_FIELDS_ACTION or not reply:
        return None

    try:
        proposal = _decode_proposal(reply)
    except FieldUpdateParseError as e:
        logger.debug("field_update_parse_skipped", reason=str(e))
        return None

    logger.info(
        "field_update_parsed",
        change_count=len(proposal.changes),
    )
    return proposal
