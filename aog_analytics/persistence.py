"""Write-path hook and MongoDB repository for grounding events.

Derived fields are never stored independently of the milestones: every
create, and every update that touches a milestone, passes the merged record
through ``apply_derived_fields`` before it reaches the collection.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from .config import Settings, get_settings
from .errors import PersistenceError
from .metrics import compute_metrics
from .models import DERIVED_FIELDS, DOCUMENT_KEYS, TIMESTAMP_FIELDS, GroundingEvent, coerce_timestamp, resolve_field

logger = logging.getLogger(__name__)

# written only by apply_derived_fields
DERIVED_KEYS = frozenset(DOCUMENT_KEYS[name] for name in (*DERIVED_FIELDS, "is_legacy"))


def touches_milestones(changes: Mapping[str, Any]) -> bool:
    """Whether an update carries any milestone, ``detectedAt`` or ``clearedAt``."""
    return any(resolve_field(key) in TIMESTAMP_FIELDS for key in changes)


def normalize_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Rename known keys to their document form and parse timestamp values.

    Derived hours and ``isLegacy`` are dropped; they only ever come from the milestones.
    """
    normalized: Dict[str, Any] = {}
    for key, value in changes.items():
        attribute = resolve_field(key)
        if attribute is None:
            normalized[key] = value
            continue
        if attribute in TIMESTAMP_FIELDS:
            value = coerce_timestamp(value)
        key = DOCUMENT_KEYS[attribute]
        if key in DERIVED_KEYS:
            logger.debug("Ignoring caller-supplied derived field", extra={"field": key})
            continue
        normalized[key] = value
    return normalized


def apply_derived_fields(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the ``$set`` payload that brings a record's derived fields up to date.

    Holds the four hour fields, ``reportedAt`` / ``upAndRunningAt`` when they
    were absent and got back-filled, and the re-derived ``isLegacy`` flag.
    """
    event = GroundingEvent.from_record(record)
    metrics = compute_metrics(event)
    payload = metrics.as_update()
    if event.reported_at is not None:
        payload.pop("reportedAt", None)
    if event.up_and_running_at is not None:
        payload.pop("upAndRunningAt", None)
    payload["isLegacy"] = metrics.is_undecomposable
    return payload


def _object_id(event_id: Any) -> Any:
    if isinstance(event_id, str) and ObjectId.is_valid(event_id):
        return ObjectId(event_id)
    return event_id


class EventRepository:
    """Grounding-event access over a Motor collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    @classmethod
    def from_database(cls, db: AsyncIOMotorDatabase, settings: Optional[Settings] = None) -> "EventRepository":
        settings = settings or get_settings()
        return cls(db[settings.events_collection])

    async def create(self, record: Mapping[str, Any]) -> GroundingEvent:
        document = normalize_changes(record)
        document.update(apply_derived_fields(document))
        try:
            result = await self._collection.insert_one(document)
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to insert AOG event: {exc}") from exc

        document["_id"] = result.inserted_id
        logger.info("Created AOG event", extra={"event_id": str(result.inserted_id)})
        return GroundingEvent.from_record(document)

    async def update(self, event_id: Any, changes: Mapping[str, Any]) -> Optional[GroundingEvent]:
        """Apply ``changes``; derived fields are recomputed when a milestone moves.

        Returns ``None`` when no event has ``event_id``.
        """
        key = {"_id": _object_id(event_id)}
        payload = normalize_changes(changes)
        try:
            if touches_milestones(payload):
                current = await self._collection.find_one(key)
                if current is None:
                    return None
                payload.update(apply_derived_fields({**current, **payload}))
            if not payload:
                current = await self._collection.find_one(key)
                return GroundingEvent.from_record(current) if current else None
            updated = await self._collection.find_one_and_update(
                key,
                {"$set": payload},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to update AOG event {event_id}: {exc}") from exc

        if updated is None:
            return None
        logger.debug("Updated AOG event", extra={"event_id": str(event_id), "fields": sorted(payload)})
        return GroundingEvent.from_record(updated)

    async def get(self, event_id: Any) -> Optional[GroundingEvent]:
        try:
            document = await self._collection.find_one({"_id": _object_id(event_id)})
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to read AOG event {event_id}: {exc}") from exc
        return GroundingEvent.from_record(document) if document else None

    async def find(self, filter: Optional[Mapping[str, Any]] = None, *, limit: Optional[int] = None) -> List[GroundingEvent]:
        try:
            documents = await self._collection.find(dict(filter or {})).to_list(length=limit)
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to query AOG events: {exc}") from exc
        return [GroundingEvent.from_record(document) for document in documents]
