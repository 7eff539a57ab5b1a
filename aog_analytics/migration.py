"""Bulk back-fill of milestones on imported grounding events.

Imported events only carry the detection/clearance pair. The migration sets
``reportedAt`` from ``detectedAt`` and ``installationCompleteAt`` /
``upAndRunningAt`` from ``clearedAt`` where they are missing, then recomputes
the derived fields so the events take part in three-bucket analytics.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from motor.motor_asyncio import AsyncIOMotorCollection

from .models import coerce_timestamp
from .persistence import apply_derived_fields

logger = logging.getLogger(__name__)

IMPORTED_FILTER = {"isImported": True}

# target milestone -> source timestamp
BACKFILL_SOURCES = {
    "reportedAt": "detectedAt",
    "installationCompleteAt": "clearedAt",
    "upAndRunningAt": "clearedAt",
}


@dataclass(slots=True)
class MigrationReport:
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    total: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"updated": self.updated, "skipped": self.skipped, "errors": self.errors, "total": self.total}


def backfill_imported_milestones(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the milestone values to set on an imported document."""
    changes: Dict[str, Any] = {}
    for target, source in BACKFILL_SOURCES.items():
        if coerce_timestamp(document.get(target)) is not None:
            continue
        value = coerce_timestamp(document.get(source))
        if value is not None:
            changes[target] = value
    return changes


def _same_value(stored: Any, new: Any) -> bool:
    if isinstance(new, bool) or isinstance(stored, bool):
        return bool(stored) == bool(new)
    if isinstance(new, float):
        try:
            return math.isclose(float(stored), new, abs_tol=1e-9)
        except (TypeError, ValueError):
            return False
    return coerce_timestamp(stored) == coerce_timestamp(new)


def build_migration_update(document: Mapping[str, Any]) -> Dict[str, Any]:
    """The ``$set`` payload for one document, empty when nothing would change."""
    changes = backfill_imported_milestones(document)
    payload = {**changes, **apply_derived_fields({**document, **changes})}
    return {key: value for key, value in payload.items() if not _same_value(document.get(key), value)}


async def migrate_imported_events(collection: AsyncIOMotorCollection, *, dry_run: bool = False) -> MigrationReport:
    """Back-fill and recompute every imported event in ``collection``.

    Documents are processed one at a time; a failure on one is logged and
    counted and the run continues with the next. With ``dry_run`` nothing is
    written but the report counts what would have been updated.
    """
    documents = await collection.find(IMPORTED_FILTER).to_list(length=None)
    report = MigrationReport(total=len(documents))
    logger.info("Starting imported event migration", extra={"documents": report.total, "dry_run": dry_run})

    for document in documents:
        event_id = document.get("_id")
        try:
            payload = build_migration_update(document)
            if not payload:
                report.skipped += 1
                continue
            if not dry_run:
                await collection.update_one({"_id": event_id}, {"$set": payload})
            report.updated += 1
        except Exception:
            logger.exception("Failed to migrate imported event", extra={"event_id": str(event_id)})
            report.errors += 1

    logger.info("Finished imported event migration", extra=report.as_dict())
    return report
