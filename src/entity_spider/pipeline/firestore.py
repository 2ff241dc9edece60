"""Firestore entity pipeline: one collection per table, one document per record."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from google.auth.exceptions import GoogleAuthError
from google.cloud import firestore

from entity_spider.errors import PipelineError
from entity_spider.model import EntityDefine
from entity_spider.pipeline.base import EntityPipeline, Record, prepare_row
from entity_spider.settings import DEFAULT_CREATION_COLUMN, DEFAULT_IDENTITY_COLUMN

LOGGER = logging.getLogger(__name__)

# Firestore batches are capped at 500 operations.
MAX_BATCH_SIZE = 500


def parse_connection_string(connection_string: str) -> Dict[str, str]:
    """Return client keyword arguments for a Firestore connection string.

    Accepts either a bare project id or ``project=...;database=...``.

    Raises:
        PipelineError: The connection string is empty or names no project.
    """

    raw = (connection_string or "").strip()
    if not raw:
        raise PipelineError("FirestoreEntityPipeline requires a connection string")
    if "=" not in raw:
        return {"project": raw}

    options: Dict[str, str] = {}
    for chunk in raw.split(";"):
        key, _, value = chunk.partition("=")
        key = key.strip().lower()
        if key in {"project", "database"} and value.strip():
            options[key] = value.strip()
    if "project" not in options:
        raise PipelineError("Firestore connection string must name a project")
    return options


class FirestoreEntityPipeline(EntityPipeline):
    """Persist entity records into Firestore collections using batch writes."""

    def __init__(
        self,
        connection_string: str,
        *,
        collection_prefix: str = "",
        batch_size: int = 400,
        identity_column: str = DEFAULT_IDENTITY_COLUMN,
        client: Optional[firestore.Client] = None,
    ) -> None:
        super().__init__()
        options = parse_connection_string(connection_string)
        self.project = options["project"]
        if client is None:
            try:
                client = firestore.Client(**options)
            except GoogleAuthError as exc:
                raise PipelineError(f"Unable to create Firestore client for {self.project}: {exc}") from exc
        self._client = client
        self._collection_prefix = collection_prefix
        self._batch_size = max(1, min(batch_size, MAX_BATCH_SIZE))
        self._identity_column = identity_column
        self._collections: Dict[str, str] = {}

    @property
    def collections(self) -> Dict[str, str]:
        """Dict[str, str]: Collection names keyed by entity name."""

        return dict(self._collections)

    def _on_entity_added(self, entity: EntityDefine) -> None:
        if entity.table_info is None:
            LOGGER.info("Entity %s has no table metadata; records will not be stored", entity.name)
            return
        name = f"{self._collection_prefix}{entity.table_info.calculate_table_name()}"
        self._collections[entity.name] = name
        LOGGER.info("Entity %s mapped to Firestore collection %s", entity.name, name)

    def process(self, entity_name: str, records: Sequence[Record]) -> int:
        """Write ``records`` as documents.

        Entities with update columns merge only their key and update fields into
        existing documents; other entities overwrite whole documents.
        """

        entity = self._require_entity(entity_name)
        collection_name = self._collections.get(entity_name)
        if collection_name is None:
            return 0
        rows = [prepare_row(entity, record) for record in records]
        if not rows:
            return 0

        table_info = entity.table_info
        primary_columns = table_info.primary_columns
        merge = bool(table_info.update_columns)
        merged_fields = (*primary_columns, *table_info.update_columns)
        collection = self._client.collection(collection_name)

        batch = self._client.batch()
        operations = 0
        written = 0
        try:
            for row in rows:
                doc_ref = collection.document(self._document_id(row, primary_columns))
                if merge:
                    payload: Dict[str, Any] = {name: row[name] for name in merged_fields if name in row}
                    batch.set(doc_ref, payload, merge=True)
                else:
                    payload = dict(row)
                    payload[DEFAULT_CREATION_COLUMN] = firestore.SERVER_TIMESTAMP
                    batch.set(doc_ref, payload)
                operations += 1
                if operations >= self._batch_size:
                    batch.commit()
                    written += operations
                    batch = self._client.batch()
                    operations = 0
            if operations:
                batch.commit()
                written += operations
        except Exception as exc:
            LOGGER.exception("Firestore write failed for entity=%s collection=%s", entity_name, collection_name)
            raise PipelineError(f"Firestore write failed for {entity_name}: {exc}") from exc
        return written

    def _document_id(self, row: Dict[str, Any], primary_columns: Sequence[str]) -> str | None:
        if not primary_columns or tuple(primary_columns) == (self._identity_column,):
            return None
        return "-".join(str(row[name]) for name in primary_columns)

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()


__all__ = ["FirestoreEntityPipeline", "parse_connection_string"]
