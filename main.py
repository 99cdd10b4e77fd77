from __future__ import annotations

import os

import uvicorn

from tradejournal.journal.journal_store import JournalStore
from tradejournal.utils.config import get_settings
from tradejournal.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def _check_journal() -> None:
    """Pre-startup check: open the journal once so schema problems surface before serving."""
    settings = get_settings()
    store = JournalStore(settings.journal_db_path)
    stats = store.get_stats()
    store.close()
    logger.info("journal_ready", **stats)


def main() -> None:
    setup_logging()
    _check_journal()

    settings = get_settings()
    port = int(os.environ.get("PORT", settings.api_port))

    uvicorn.run(
        "tradejournal.api.webapp:app",
        host=settings.api_host,
        port=port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
