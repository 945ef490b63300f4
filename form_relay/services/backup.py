from __future__ import annotations

import json
import logging
from typing import Any, Dict

from pymongo.errors import PyMongoError

from form_relay.errors import PersistenceError

logger = logging.getLogger(__name__)


class BackupStore:
    """Appends raw submissions to MongoDB ahead of the CRM sync."""

    def __init__(self, collection) -> None:
        self._collection = collection

    def append(self, raw_record: Dict[str, Any]) -> str:
        document = {"data": json.dumps(raw_record)}
        try:
            result = self._collection.insert_one(document)
        except PyMongoError as exc:
            logger.exception("Failed to store submission in database")
            raise PersistenceError("Database storage failed") from exc
        inserted_id = str(result.inserted_id)
        logger.info("Stored raw submission %s for form %s", inserted_id, raw_record.get("form"))
        return inserted_id
