"""
Adapter Factory
Centralizes the logic for selecting the scheduler and progress backends.
"""

import logging

from renshu.application.config import AppConfig
from renshu.domain.ports import ProgressRepository, SchedulerAdapter
from renshu.infrastructure.adapters.fsrs_scheduler import FsrsSchedulerAdapter
from renshu.infrastructure.adapters.http_progress import HttpProgressRepository
from renshu.infrastructure.adapters.sqlite_progress import SqliteProgressRepository

logger = logging.getLogger(__name__)


def get_scheduler(config: AppConfig) -> SchedulerAdapter:
    return FsrsSchedulerAdapter(
        desired_retention=config.desired_retention,
        maximum_interval=config.maximum_interval,
        enable_fuzzing=config.enable_fuzzing,
    )


def get_progress_repository(config: AppConfig) -> ProgressRepository:
    """
    Returns the ProgressRepository implementation selected by ``progress_backend``.
    """
    if config.progress_backend == "http":
        if not config.progress_url:
            raise ValueError("progress_backend 'http' requires progress_url to be set")
        logger.debug(f"Progress backend: HTTP ({config.progress_url})")
        return HttpProgressRepository(base_url=config.progress_url)

    logger.debug(f"Progress backend: SQLite ({config.progress_db})")
    return SqliteProgressRepository(db_path=config.progress_db)
