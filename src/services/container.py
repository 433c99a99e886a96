"""Wiring of stores, analyzers, and the link monitor for entrypoints."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from activity.analyzer import ActivityAnalyzer
from config import Settings, settings
from inventory.protocols import Notifier
from inventory.sql_store import SqlActivityLog, SqlItemStore, SqlKeyValueStore
from link_health.monitor import LinkMonitor
from link_health.probe import LinkProber
from link_health.recovery import RecoveryChain, build_recovery_chain
from link_health.repository import LinkHealthRepository
from services.database import get_session_factory
from services.notifier import LoggingNotifier
from suggestions.engine import SuggestionEngine


@dataclass
class NestServices:
    """Fully wired service graph shared by the CLI and scheduled tasks."""

    item_store: SqlItemStore
    activity_log: SqlActivityLog
    key_value_store: SqlKeyValueStore
    analyzer: ActivityAnalyzer
    link_repository: LinkHealthRepository
    link_monitor: LinkMonitor
    suggestion_engine: SuggestionEngine
    notifier: Notifier


def build_services(
    session_factory: Callable[[], Session] | None = None,
    *,
    notifier: Notifier | None = None,
    prober: LinkProber | None = None,
    recovery_chain: RecoveryChain | None = None,
    config: Settings | None = None,
    now_provider: Callable[[], datetime] | None = None,
) -> NestServices:
    """Build the service graph over a SQL session factory."""
    cfg = config or settings
    factory = session_factory or get_session_factory()
    item_store = SqlItemStore(factory)
    activity_log = SqlActivityLog(factory)
    key_value_store = SqlKeyValueStore(factory)
    sink = notifier or LoggingNotifier()
    analyzer = ActivityAnalyzer(
        item_store, activity_log, config=cfg.analyzer, now_provider=now_provider
    )
    repository = LinkHealthRepository(key_value_store, cfg.link_health.storage_key)
    monitor = LinkMonitor(
        item_store,
        repository,
        prober or LinkProber(cfg.link_health),
        recovery_chain or build_recovery_chain(config=cfg.archives),
        config=cfg.link_health,
        notifier=sink,
        now_provider=now_provider,
    )
    engine = SuggestionEngine(
        analyzer,
        item_store,
        activity_log,
        config=cfg.suggestions,
        link_monitor=monitor,
        now_provider=now_provider,
    )
    return NestServices(
        item_store=item_store,
        activity_log=activity_log,
        key_value_store=key_value_store,
        analyzer=analyzer,
        link_repository=repository,
        link_monitor=monitor,
        suggestion_engine=engine,
        notifier=sink,
    )
