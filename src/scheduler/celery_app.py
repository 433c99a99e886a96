"""Celery entry point for periodic link health checks."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Callable

from celery import Celery

from config import settings
from services.container import NestServices, build_services
from services.database import create_tables, get_engine

LOGGER = logging.getLogger(__name__)


def _env(var: str, default: str) -> str:
    return os.environ.get(var, default)


celery_app = Celery("nest.scheduler")
celery_app.conf.broker_url = _env("CELERY_BROKER_URL", "redis://redis:6379/1")
celery_app.conf.result_backend = _env("CELERY_RESULT_BACKEND", "redis://redis:6379/2")
celery_app.conf.task_default_queue = _env("CELERY_QUEUE_NAME", "link_health")
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.enable_utc = True
celery_app.conf.timezone = "UTC"

beat_schedule = celery_app.conf.get("beat_schedule")
if beat_schedule is None:
    beat_schedule = {}
beat_schedule["link_health.schedule_periodic_checks"] = {
    "task": "link_health.schedule_periodic_checks",
    "schedule": settings.link_health.schedule_interval_minutes * 60.0,
}
celery_app.conf.beat_schedule = beat_schedule


def _default_services() -> NestServices:
    create_tables(get_engine())
    return build_services()


async def run_scheduled_link_checks(services: NestServices) -> dict[str, int]:
    """Schedule due link checks and wait for the drain and recoveries to finish."""
    monitor = services.link_monitor
    scheduled = await monitor.schedule_periodic_checks()
    await monitor.wait_until_idle()
    dead = await monitor.get_dead_links()
    LOGGER.info("Link health run completed: scheduled=%s dead=%s", scheduled, len(dead))
    return {"scheduled": scheduled, "dead": len(dead)}


def process_link_health_cycle(
    services_factory: Callable[[], NestServices] = _default_services,
) -> dict[str, int]:
    """Run one full link health cycle on a fresh event loop."""
    return asyncio.run(run_scheduled_link_checks(services_factory()))


@celery_app.task(name="link_health.schedule_periodic_checks")
def schedule_periodic_checks() -> dict[str, int]:
    """Celery beat job that checks links due for a health check."""
    return process_link_health_cycle()
