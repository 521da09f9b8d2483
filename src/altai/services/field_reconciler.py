"""Apply proposed field changes to the live content store.

Changes are checked against the store's current values, converted to the
field's storage shape, and committed in two rounds: the host form may
overwrite the first write while it re-renders, so every staged value is
dispatched again once things have settled.
"""

import asyncio
import difflib
import re
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from altai.models.chat import FieldChange, ReconcileResult
from altai.richtext.codec import is_rich_field, text_to_rich_document
from altai.services.content_store import ContentStore
from altai.services.exceptions import StoreUnavailableError
from altai.utils.logging import get_logger


logger = get_logger(__name__)

FUZZY_MATCH_THRESHOLD = 60

OnComplete = Callable[[ReconcileResult], Union[None, Awaitable[None]]]


def normalize_field_handle(handle: str) -> str:
    """
    Normalize a handle the model may have derived from a display label.

    Handles without spaces or uppercase letters are returned unchanged.

    Example:
        >>> normalize_field_handle("Contact Info")
        'contact_info'
    """
    if not re.search(r"\s|[A-Z]", handle):
        return handle
    normalized = re.sub(r"\s+", "_", handle.lower())
    return re.sub(r"[^a-z0-9_]", "", normalized)


def _similarity(a: str, b: str) -> float:
    score = difflib.SequenceMatcher(None, a, b).ratio() * 100
    if a in b or b in a:
        score += 20
    shared_words = set(a.split("_")) & set(b.split("_"))
    score += 15 * len(shared_words - {""})
    return score


def find_best_field_match(suggested: str, available: Iterable[str]) -> Optional[str]:
    """
    Find the available handle closest to a suggested one.

    An exact match (after normalization) wins outright; otherwise the best
    similarity score at or above FUZZY_MATCH_THRESHOLD is returned.

    Args:
        suggested: Handle proposed by the model
        available: Handles present in the store

    Returns:
        Matching handle, or None
    """
    candidates = list(available)
    normalized = normalize_field_handle(suggested)
    if normalized in candidates:
        return normalized

    best_match = None
    best_score = 0.0
    for candidate in candidates:
        score = _similarity(normalized, candidate.lower())
        if score > best_score:
            best_match, best_score = candidate, score

    if best_match is not None and best_score >= FUZZY_MATCH_THRESHOLD:
        logger.debug(
            "field_fuzzy_matched",
            suggested=suggested,
            matched=best_match,
            score=round(best_score, 1),
        )
        return best_match
    return None


class FieldReconciler:
    """
    Stages proposed changes against a content store and commits them.

    Args:
        store: Live content store; None means the form store isn't available
        settle_delay: Seconds between the first and second write rounds
        final_delay: Seconds after the second round before `on_complete`
        fuzzy_match: Resolve unknown handles with `find_best_field_match`
    """

    def __init__(
        self,
        store: Optional[ContentStore],
        settle_delay: float = 0.2,
        final_delay: float = 0.1,
        fuzzy_match: bool = False,
    ):
        self.store = store
        self.settle_delay = settle_delay
        self.final_delay = final_delay
        self.fuzzy_match = fuzzy_match

    def _resolve_handle(self, handle: str, values: dict[str, Any]) -> Optional[str]:
        normalized = normalize_field_handle(handle)
        if normalized in values:
            return normalized
        if handle in values:
            return handle
        if self.fuzzy_match:
            return find_best_field_match(handle, values.keys())
        return None

    def stage(self, changes: Iterable[FieldChange]) -> tuple[ReconcileResult, list[tuple[str, Any]]]:
        """
        Check each change against the store without writing anything.

        Returns:
            (result, staged) where staged is the ordered (handle, value) list

        Raises:
            StoreUnavailableError: If there is no store
        """
        if self.store is None:
            logger.error("reconcile_store_unavailable")
            raise StoreUnavailableError("Cannot apply changes: publish form store not found")

        values = self.store.get_field_values()
        result = ReconcileResult()
        staged: list[tuple[str, Any]] = []

        for change in changes:
            try:
                handle = self._resolve_handle(change.field, values)
                if handle is None:
                    logger.warning(
                        "field_change_skipped",
                        field=change.field,
                        reason="not_found",
                        available=sorted(values.keys()),
                    )
                    result.change_details.append(f"⚠ {change.field} (field not found)")
                    result.skipped_count += 1
                    continue

                current_value = values.get(handle)
                new_value = change.proposed_value
                if is_rich_field(current_value):
                    new_value = text_to_rich_document(new_value)

                if current_value == new_value:
                    logger.info("field_change_skipped", field=handle, reason="unchanged")
                    result.change_details.append(f"⊘ {handle} (no change needed)")
                    result.skipped_count += 1
                    continue

                staged.append((handle, new_value))
                result.applied_count += 1
                result.change_details.append(f"✓ {handle}")

            except Exception as e:
                logger.error(
                    "field_change_failed",
                    field=change.field,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result.change_details.append(f"✗ {change.field} ({e})")

        return result, staged

    def _dispatch_round(self, staged: list[tuple[str, Any]], round_number: int) -> None:
        for handle, value in staged:
            try:
                self.store.set_field_value(handle, value)
            except Exception as e:
                logger.error(
                    "field_dispatch_failed",
                    field=handle,
                    round=round_number,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def apply_changes(
        self,
        changes: Iterable[FieldChange],
        on_complete: Optional[OnComplete] = None,
    ) -> ReconcileResult:
        """
        Apply changes to the store in two write rounds.

        Args:
            changes: Proposed changes, applied in order
            on_complete: Called with the result after the second round settles

        Returns:
            ReconcileResult with counts and one detail line per change

        Raises:
            StoreUnavailableError: If there is no store
        """
        result, staged = self.stage(changes)

        logger.info(
            "reconcile_staged",
            applied=result.applied_count,
            skipped=result.skipped_count,
        )

        if staged:
            self._dispatch_round(staged, 1)
            await asyncio.sleep(0)
            await asyncio.sleep(self.settle_delay)

            self._dispatch_round(staged, 2)
            await asyncio.sleep(0)
            await asyncio.sleep(self.final_delay)

        if on_complete is not None:
            outcome = on_complete(result)
            if asyncio.iscoroutine(outcome):
                await outcome

        logger.info("reconcile_completed", applied=result.applied_count)
        return result
