"""Relational entity pipelines built on SQLAlchemy.

Each registered :class:`EntityDefine` with table metadata is turned into a
:class:`sqlalchemy.Table`: declared columns plus the reserved identity column
(when no primary key is declared) and the ``cdate`` creation timestamp.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, ClassVar, Dict, Iterator, List, Sequence

import sqlalchemy as sa
from sqlalchemy import Engine
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from entity_spider.errors import PipelineError
from entity_spider.model import Column, DataTypeNames, EntityDefine
from entity_spider.pipeline.base import EntityPipeline, Record, prepare_row
from entity_spider.settings import DEFAULT_CREATION_COLUMN, Settings, get_settings

LOGGER = logging.getLogger(__name__)

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")
TIMESTAMP = sa.DateTime(timezone=True)
IDENTITY_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

_CONNECTION_KEYS = {
    "server": "host",
    "host": "host",
    "data source": "host",
    "database": "database",
    "initial catalog": "database",
    "uid": "username",
    "user id": "username",
    "user": "username",
    "username": "username",
    "pwd": "password",
    "password": "password",
    "port": "port",
}


def _column_type(column: Column) -> sa.types.TypeEngine:
    if column.multi:
        return JSON_TYPE
    if column.data_type == DataTypeNames.STRING:
        return sa.String(length=column.length) if column.length > 0 else sa.Text()
    if column.data_type == DataTypeNames.INT:
        return sa.BigInteger()
    if column.data_type == DataTypeNames.FLOAT:
        return sa.Float()
    if column.data_type == DataTypeNames.BOOL:
        return sa.Boolean()
    if column.data_type == DataTypeNames.DECIMAL:
        return sa.Numeric(18, 2)
    if column.data_type == DataTypeNames.DATETIME:
        return TIMESTAMP
    if column.data_type == DataTypeNames.DATE:
        return sa.Date()
    if column.data_type == DataTypeNames.BYTES:
        return sa.LargeBinary()
    return sa.Text()


class SqlEntityPipeline(EntityPipeline):
    """Persist entity records into a relational database."""

    drivername: ClassVar[str] = "sqlite"
    supports_schema: ClassVar[bool] = True

    def __init__(
        self,
        connection_string: str | None = None,
        *,
        engine: Engine | None = None,
        settings: Settings | None = None,
        echo: bool = False,
    ) -> None:
        super().__init__()
        self._connection_string = connection_string
        self._settings = settings
        self._engine = engine
        self._owns_engine = engine is None
        self._echo = echo
        self._session_factory: sessionmaker | None = None
        self.metadata = sa.MetaData()
        self._tables: Dict[str, sa.Table] = {}

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    @property
    def tables(self) -> Dict[str, sa.Table]:
        """Dict[str, sa.Table]: SQLAlchemy tables keyed by entity name."""

        return dict(self._tables)

    def resolve_database_url(self) -> str:
        """Return the SQLAlchemy URL for the configured connection string.

        URL-style strings are used verbatim. ``key=value;`` strings
        (``Server=...;Database=...;Uid=...;Pwd=...``) are translated with this
        pipeline's driver name.
        """

        raw = self._connection_string or self.settings.storage.connection_string
        if not raw:
            raise PipelineError(f"{type(self).__name__} requires a connection string")
        raw = raw.strip()
        if "://" in raw:
            return raw

        parts: Dict[str, Any] = {}
        for chunk in raw.split(";"):
            if "=" not in chunk:
                continue
            key, value = chunk.split("=", 1)
            target = _CONNECTION_KEYS.get(key.strip().lower())
            if target:
                parts[target] = value.strip()
        if "port" in parts:
            parts["port"] = int(parts["port"])
        return URL.create(self.drivername, **parts).render_as_string(hide_password=False)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            url = self.resolve_database_url()
            connect_args: dict[str, Any] = {}
            if url.startswith("sqlite"):
                connect_args["check_same_thread"] = False
            self._engine = sa.create_engine(
                url, echo=self._echo, future=True, pool_pre_ping=True, connect_args=connect_args
            )
        return self._engine

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, autoflush=False, future=True)
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def build_table(self, entity: EntityDefine) -> sa.Table:
        """Derive the SQLAlchemy table for ``entity``.

        Entities sharing a physical table reuse the one already on ``metadata``.
        """

        table_info = entity.table_info
        if table_info is None:
            raise PipelineError(f"Entity '{entity.name}' has no table metadata")

        identity_column = self.settings.schema_rules.identity_column
        primary_columns = table_info.primary_columns
        table_name = table_info.calculate_table_name()
        schema = table_info.database if self.supports_schema else None
        existing = self.metadata.tables.get(f"{schema}.{table_name}" if schema else table_name)
        if existing is not None:
            return existing

        columns: List[sa.Column] = []
        if primary_columns == (identity_column,):
            columns.append(sa.Column(identity_column, IDENTITY_TYPE, primary_key=True, autoincrement=True))
        for column in entity.storable_columns:
            is_primary = column.name in primary_columns
            columns.append(
                sa.Column(
                    column.name,
                    _column_type(column),
                    primary_key=is_primary,
                    nullable=not (column.not_null or is_primary),
                    autoincrement=False,
                )
            )
        columns.append(
            sa.Column(
                DEFAULT_CREATION_COLUMN,
                TIMESTAMP,
                nullable=False,
                server_default=sa.text("CURRENT_TIMESTAMP"),
            )
        )

        constraints = [
            sa.UniqueConstraint(*group.split(","), name=f"uq_{table_name}_{group.replace(',', '_')}")
            for group in table_info.uniques
        ]
        table = sa.Table(table_name, self.metadata, *columns, *constraints, schema=schema)
        for group in table_info.indexs:
            sa.Index(f"idx_{table_name}_{group.replace(',', '_')}", *(table.c[name] for name in group.split(",")))
        return table

    def _on_entity_added(self, entity: EntityDefine) -> None:
        if entity.table_info is None:
            LOGGER.info("Entity %s has no table metadata; records will not be stored", entity.name)
            return
        table = self.build_table(entity)
        try:
            self.metadata.create_all(self.engine, tables=[table])
        except (SQLAlchemyError, ImportError) as exc:
            LOGGER.exception("Unable to prepare table %s for entity %s", table.fullname, entity.name)
            raise PipelineError(f"Unable to prepare table {table.fullname} for {entity.name}: {exc}") from exc
        self._tables[entity.name] = table
        LOGGER.info("Prepared table %s for entity %s", table.fullname, entity.name)

    def process(self, entity_name: str, records: Sequence[Record]) -> int:
        """Insert or upsert ``records`` of ``entity_name``.

        Entities with update columns are upserted by primary key: matched rows
        receive the update columns, unmatched rows are inserted.
        """

        entity = self._require_entity(entity_name)
        table = self._tables.get(entity_name)
        if table is None:
            return 0
        rows = [prepare_row(entity, record) for record in records]
        if not rows:
            return 0

        table_info = entity.table_info
        identity_column = self.settings.schema_rules.identity_column
        primary_columns = table_info.primary_columns
        upsert = bool(table_info.update_columns) and primary_columns != (identity_column,)

        try:
            with self._session_scope() as session:
                for row in rows:
                    if upsert:
                        self._upsert_row(session, table, row, primary_columns, table_info.update_columns)
                    else:
                        session.execute(sa.insert(table).values(**row))
        except SQLAlchemyError as exc:
            LOGGER.exception("SQL write failed for entity=%s table=%s", entity_name, table.fullname)
            raise PipelineError(f"SQL write failed for {entity_name}: {exc}") from exc
        return len(rows)

    @staticmethod
    def _upsert_row(
        session: Session,
        table: sa.Table,
        row: Dict[str, Any],
        primary_columns: Sequence[str],
        update_columns: Sequence[str],
    ) -> None:
        predicate = sa.and_(*(table.c[name] == row[name] for name in primary_columns))
        values = {name: row[name] for name in update_columns}
        result = session.execute(sa.update(table).where(predicate).values(**values))
        if result.rowcount == 0:
            session.execute(sa.insert(table).values(**row))

    def close(self) -> None:
        if self._owns_engine and self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None


class MySqlEntityPipeline(SqlEntityPipeline):
    """MySQL pipeline using the PyMySQL driver."""

    drivername = "mysql+pymysql"


class PostgreSqlEntityPipeline(SqlEntityPipeline):
    """PostgreSQL pipeline using the psycopg driver."""

    drivername = "postgresql+psycopg"


class SqlServerEntityPipeline(SqlEntityPipeline):
    """SQL Server pipeline using the pyodbc driver."""

    drivername = "mssql+pyodbc"


class SqliteEntityPipeline(SqlEntityPipeline):
    """SQLite pipeline; falls back to ``storage.sqlite_path`` without a connection string."""

    drivername = "sqlite"
    supports_schema = False

    def resolve_database_url(self) -> str:
        raw = self._connection_string or self.settings.storage.connection_string
        if raw and "://" in raw:
            return raw.strip()
        database = None
        if raw:
            for chunk in raw.split(";"):
                key, _, value = chunk.partition("=")
                if key.strip().lower() == "data source" and value.strip():
                    database = value.strip()
        if database is None:
            path = self.settings.storage.sqlite_path
            path.parent.mkdir(parents=True, exist_ok=True)
            database = path.as_posix()
        return URL.create("sqlite", database=database).render_as_string(hide_password=False)


__all__ = [
    "SqlEntityPipeline",
    "MySqlEntityPipeline",
    "PostgreSqlEntityPipeline",
    "SqlServerEntityPipeline",
    "SqliteEntityPipeline",
]
