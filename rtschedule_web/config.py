"""Scheduler configuration as a FastAPI dependency (override it in tests)."""
from functools import lru_cache

from rtschedule.models import SchedulerConfig


@lru_cache(maxsize=1)
def _env_config() -> SchedulerConfig:
    return SchedulerConfig.from_env()


def get_config() -> SchedulerConfig:
    return _env_config()
