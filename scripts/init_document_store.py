"""Create the ``documents`` table in the database named by STUDYDESK_DB_URL.

Idempotent: existing tables are left alone.

Usage:
  STUDYDESK_DB_URL=postgresql://... python scripts/init_document_store.py
"""

from __future__ import annotations

import asyncio
import logging
import sys

from studydesk_document_access.client import get_engine
from studydesk_document_access.tables import metadata
from studydesk_shared.logging_config import configure_logging

logger = logging.getLogger("init_document_store")


async def _create() -> None:
    engine = get_engine()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
    finally:
        await engine.dispose()


def main() -> None:
    configure_logging()
    try:
        asyncio.run(_create())
    except RuntimeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    logger.info("Document table ready")


if __name__ == "__main__":
    main()
