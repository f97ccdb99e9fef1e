"""Apply verify / unverify / delete to a set of image ids."""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from dal.record_source import AuthorizationError, RecordSource, RecordSourceError
from models.action_models import BulkAction, BulkActionResult
from services.operation_guard import OperationGuard
from services.worker_pool import run_bounded

logger = logging.getLogger(__name__)

BULK_ACTIONS = ("verify", "unverify", "delete")

_PAST_TENSE: Dict[str, str] = {"verify": "verified", "unverify": "unverified", "delete": "deleted"}


def summarize(action: str, success_count: int, failure_count: int) -> str:
    """Return the operator-facing summary for a finished run."""
    past = _PAST_TENSE[action]
    if failure_count == 0:
        return f"Successfully {past} {success_count} images"
    if success_count > 0:
        return f"{past.capitalize()} {success_count} images. Failed to {action} {failure_count} images."
    return f"Failed to {action} all {failure_count} images."


class BulkActionExecutor:
    """Run bulk actions against a record source with per-item failure isolation.

    Verify/unverify first try one batched request; when the source cannot batch
    or the batch is refused, every id is retried on its own so the result
    reports exactly which part succeeded. Delete always goes id by id.

    Args:
        source: Record source to mutate.
        guard: Shared in-progress flags; one is created when omitted.
        max_concurrency: Per-id requests allowed in flight at once.
    """

    def __init__(self, source: RecordSource, guard: OperationGuard | None = None, max_concurrency: int = 1) -> None:
        self.source = source
        self.guard = guard or OperationGuard()
        self.max_concurrency = max(1, max_concurrency)

    def is_running(self, action: str) -> bool:
        return self.guard.is_running(action)

    async def execute(self, action: BulkAction, image_ids: Sequence[int]) -> BulkActionResult:
        """Run `action` on `image_ids`.

        Raises:
            ValueError: If `action` is not a known bulk action.
            AuthorizationError: If the source rejects the caller; not retried.
        """
        if action not in BULK_ACTIONS:
            raise ValueError(f"Unsupported bulk action '{action}'. Supported: {', '.join(BULK_ACTIONS)}")

        ids = list(dict.fromkeys(image_ids))
        if not ids:
            return BulkActionResult(
                action=action,
                message=f"No images selected. Select an image to {action}.",
                status="empty",
            )

        async with self.guard.hold(action) as acquired:
            if not acquired:
                return BulkActionResult(
                    action=action,
                    message=f"A {action} action is already in progress.",
                    status="busy",
                )

            if action == "delete":
                outcomes = await self._per_item(action, ids)
            else:
                outcomes = await self._update(action, ids)

        success_count = sum(1 for ok in outcomes if ok)
        failure_count = len(outcomes) - success_count
        logger.info("Bulk %s finished: %d succeeded, %d failed", action, success_count, failure_count)
        return BulkActionResult(
            action=action,
            success_count=success_count,
            failure_count=failure_count,
            message=summarize(action, success_count, failure_count),
        )

    async def _update(self, action: str, ids: List[int]) -> List[bool]:
        updates = {"is_verified": action == "verify"}
        if getattr(self.source, "supports_bulk_update", False):
            try:
                await self.source.bulk_update(ids, updates)
                return [True] * len(ids)
            except AuthorizationError:
                raise
            except RecordSourceError as exc:
                logger.warning("Batched %s of %d images failed (%s); retrying one by one", action, len(ids), exc)
        return await self._per_item(action, ids)

    async def _per_item(self, action: str, ids: List[int]) -> List[bool]:
        updates = {"is_verified": action == "verify"}

        async def _apply(image_id: int) -> bool:
            try:
                if action == "delete":
                    await self.source.delete_record(image_id)
                else:
                    await self.source.update_record(image_id, updates)
                return True
            except AuthorizationError:
                raise
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error("Failed to %s image %s: %s", action, image_id, exc)
                return False

        return await run_bounded(ids, _apply, self.max_concurrency)
