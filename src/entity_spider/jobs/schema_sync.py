"""Job entrypoint that compiles entity declarations and prepares their storage.

Declarations are located through ``ENTITY_SPIDER_SCHEMA_SYNC__DECLARATIONS``,
a comma-separated list of ``module:attribute`` references. Each attribute is
an :class:`EntityDeclaration` or an iterable of them. With
``ENTITY_SPIDER_SCHEMA_SYNC__DRY_RUN`` enabled the declarations are only
validated; otherwise they are registered with the configured pipeline, which
creates the backing tables or collections.
"""

from __future__ import annotations

import importlib
import logging
import os
from typing import Iterable, List

from entity_spider.errors import SpiderError
from entity_spider.observability import configure_logging
from entity_spider.schema import EntityDeclaration, build_entity_define
from entity_spider.settings import get_settings
from entity_spider.spider import EntitySpider

LOGGER = logging.getLogger("entity_spider.jobs.schema_sync")

DECLARATIONS_ENV_VAR = "ENTITY_SPIDER_SCHEMA_SYNC__DECLARATIONS"
DRY_RUN_ENV_VAR = "ENTITY_SPIDER_SCHEMA_SYNC__DRY_RUN"


def load_declarations(references: Iterable[str]) -> List[EntityDeclaration]:
    """Import every ``module:attribute`` reference and flatten the declarations found."""

    declarations: List[EntityDeclaration] = []
    for reference in references:
        module_name, _, attribute = reference.strip().partition(":")
        if not module_name or not attribute:
            raise ValueError(f"Declaration reference '{reference}' must look like 'module:attribute'")
        target = getattr(importlib.import_module(module_name), attribute)
        if isinstance(target, EntityDeclaration):
            declarations.append(target)
            continue
        for item in target:
            if not isinstance(item, EntityDeclaration):
                raise TypeError(f"{reference} yields {type(item).__name__}, not an EntityDeclaration")
            declarations.append(item)
    return declarations


def main() -> int:
    """Entry point executed by the schema sync job container."""

    settings = get_settings()
    configure_logging(settings)

    raw = os.getenv(DECLARATIONS_ENV_VAR, "")
    references = [value.strip() for value in raw.split(",") if value.strip()]
    if not references:
        LOGGER.error("%s must name at least one declaration", DECLARATIONS_ENV_VAR)
        return 1
    dry_run = os.getenv(DRY_RUN_ENV_VAR, "false").lower() in {"1", "true", "yes", "on"}

    try:
        declarations = load_declarations(references)
    except (ImportError, AttributeError, TypeError, ValueError, SpiderError):
        LOGGER.exception("Unable to load entity declarations from %s", raw)
        return 1

    LOGGER.info(
        "Starting schema sync: declarations=%d provider=%s dry_run=%s",
        len(declarations),
        settings.provider_name,
        dry_run,
    )

    if dry_run:
        failures = 0
        for declaration in declarations:
            try:
                entity = build_entity_define(declaration, settings=settings)
            except SpiderError as exc:
                failures += 1
                LOGGER.error("Declaration %s is invalid: %s", declaration.name, exc)
                continue
            LOGGER.info(
                "Declaration %s is valid: columns=%s table=%s",
                entity.name,
                [column.name for column in entity.columns],
                entity.table_info.name if entity.table_info else None,
            )
        return 1 if failures else 0

    spider = EntitySpider("schema_sync", settings=settings)
    try:
        for declaration in declarations:
            spider.add_entity_type(declaration)
        spider.initialize()
    except SpiderError:
        LOGGER.exception("Schema sync failed")
        return 1
    finally:
        spider.close()

    LOGGER.info("Schema sync finished for %d entit(ies)", len(spider.entities))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
