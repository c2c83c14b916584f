"""
Bulk delete coordinator.

Splits an arbitrary key list into store-sized batches and folds every batch
outcome into one report. Best effort and non-atomic: batches already deleted
stay deleted when a later batch fails, and there is no rollback.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Sequence

from .errors import InvalidArgument, StoreUnavailable
from .object_store import ObjectStore

logger = logging.getLogger(__name__)

NOT_REPORTED = "NotReported"


@dataclass
class BatchFailure:
    """A batch whose delete request could not be performed at all."""

    batch_number: int
    keys: List[str]
    message: str
    code: str | None = None


@dataclass
class BulkDeleteReport:
    deleted_keys: List[str] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)
    failed_batches: List[BatchFailure] = field(default_factory=list)

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_keys)

    @property
    def completed(self) -> bool:
        """True when every batch request reached the store."""
        return not self.failed_batches


def chunked(keys: Sequence[str], size: int) -> Iterator[List[str]]:
    for start in range(0, len(keys), size):
        yield list(keys[start:start + size])


class BulkDeleteCoordinator:
    def __init__(self, store: ObjectStore, *, batch_size: int = 1000) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.batch_size = batch_size

    def delete(self, keys: Sequence[str]) -> BulkDeleteReport:
        """
        Delete ``keys`` in batches of at most ``batch_size``.

        Every batch is attempted even if an earlier one failed. Per-key
        rejections land in ``errors``; a batch whose request failed outright
        lands in ``failed_batches`` so callers can tell the two apart.
        """
        if not keys:
            raise InvalidArgument("No keys provided")
        if any(not isinstance(key, str) or not key for key in keys):
            raise InvalidArgument("Keys must be non-empty strings")

        report = BulkDeleteReport()
        for batch_number, batch in enumerate(chunked(keys, self.batch_size), start=1):
            try:
                result = self.store.delete_objects(batch)
            except StoreUnavailable as exc:
                logger.error(
                    "Bulk delete batch %s (%s keys) failed: %s",
                    batch_number,
                    len(batch),
                    exc.message,
                )
                report.failed_batches.append(
                    BatchFailure(
                        batch_number=batch_number,
                        keys=batch,
                        message=exc.message,
                        code=exc.code,
                    )
                )
                continue

            report.deleted_keys.extend(result.deleted)
            report.errors.extend(result.errors)
            self._flag_unreported(batch_number, batch, result.deleted, result.errors, report)

        logger.info(
            "Bulk delete of %s keys: %s deleted, %s rejected, %s failed batches",
            len(keys),
            report.deleted_count,
            len(report.errors),
            len(report.failed_batches),
        )
        return report

    @staticmethod
    def _flag_unreported(
        batch_number: int,
        batch: List[str],
        deleted: List[str],
        errors: List[Dict[str, str]],
        report: BulkDeleteReport,
    ) -> None:
        classified = set(deleted) | {error["key"] for error in errors}
        missing = [key for key in batch if key not in classified]
        if not missing:
            return
        logger.warning(
            "Store did not report an outcome for %s keys in batch %s",
            len(missing),
            batch_number,
        )
        for key in missing:
            report.errors.append(
                {
                    "key": key,
                    "code": NOT_REPORTED,
                    "message": "Store reported neither success nor failure for this key",
                }
            )
