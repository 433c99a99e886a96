"""Nest insights CLI actor implemented with Typer."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import sys
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

import typer
from sqlalchemy.orm import sessionmaker

from config import settings
from inventory.errors import ItemNotFound, StoreError
from services.container import NestServices, build_services
from services.database import build_engine, create_tables

SUCCESS_EXIT_CODE = 0
DOMAIN_ERROR_EXIT_CODE = 3
STORE_ERROR_EXIT_CODE = 4


@dataclass(frozen=True)
class CliConfig:
    """Global CLI runtime options shared by every command."""

    database_url: str
    as_json: bool


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""

    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if dataclasses.is_dataclass(value):
        return _serialize(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_serialize(item) for item in value]
    return str(value)


def _emit_output(result: Any, as_json: bool) -> None:
    """Render command output in requested format."""

    data = _serialize(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
        return
    rendered = _render_human(data)
    if rendered is not None:
        typer.echo(rendered)
        return
    if data is None:
        typer.echo("ok")
        return
    typer.echo(str(data))


def _error_message(exc: Exception) -> str:
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)


def _emit_error(exc: Exception, as_json: bool) -> None:
    """Render domain and store errors to stderr."""

    message = _error_message(exc)
    if as_json:
        typer.echo(json.dumps({"error": message}), err=True)
        return
    typer.echo(f"error: {message}", err=True)


def _render_human(data: Any) -> str | None:
    """Return human-oriented rendering for recognized response shapes."""
    if isinstance(data, list) and data and all(isinstance(entry, dict) for entry in data):
        if _looks_like_suggestions(data):
            return _render_suggestions(data)
        if _looks_like_stale_items(data):
            return _render_stale_items(data)
    if isinstance(data, list) and not data:
        return "Nothing to report."
    if isinstance(data, dict) and "counts_by_status" in data:
        return _render_health_report(data)
    if isinstance(data, (dict, list)):
        return json.dumps(data, indent=2, sort_keys=True)
    return None


def _looks_like_suggestions(value: list[dict[str, Any]]) -> bool:
    return all("priority" in entry and "title" in entry for entry in value)


def _looks_like_stale_items(value: list[dict[str, Any]]) -> bool:
    return all("staleness_score" in entry for entry in value)


def _render_suggestions(items: list[dict[str, Any]]) -> str:
    """Render ranked suggestions."""
    lines: list[str] = []
    for entry in items:
        lines.append(f"- [{entry['priority']}] {entry['title']} ({entry['id']})")
        lines.append(f"  {entry['description']}")
    return "\n".join(lines)


def _render_stale_items(items: list[dict[str, Any]]) -> str:
    """Render stale content rows."""
    lines: list[str] = []
    for entry in items:
        item = entry.get("item", {})
        lines.append(
            f"- {item.get('title', '<untitled>')} "
            f"(score: {entry['staleness_score']:.2f}, {entry['reason']}, "
            f"suggest: {entry['suggested_action']})"
        )
    return "\n".join(lines)


def _render_health_report(data: dict[str, Any]) -> str:
    """Render the link health report summary."""
    counts = data.get("counts_by_status", {})
    lines = [f"Total items: {data.get('total_items', 0)}"]
    for status in sorted(counts):
        lines.append(f"  {status}: {counts[status]}")
    lines.append(f"Unchecked: {data.get('unchecked', 0)}")
    lines.append(f"Recovered: {data.get('recently_recovered', 0)}")
    dead = data.get("dead_item_ids", [])
    if dead:
        lines.append("Dead items: " + ", ".join(dead))
    return "\n".join(lines)


def _build_services(cfg: CliConfig) -> NestServices:
    """Return the service graph bound to the configured database."""
    engine = build_engine(cfg.database_url)
    create_tables(engine)
    return build_services(sessionmaker(bind=engine, expire_on_commit=False))


def _run_command(
    cfg: CliConfig, invoke: Callable[[NestServices], Awaitable[Any]]
) -> None:
    """Execute one service call and map outputs/errors to process semantics."""
    services = _build_services(cfg)
    try:
        result = asyncio.run(invoke(services))
    except ItemNotFound as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE) from exc
    except StoreError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=STORE_ERROR_EXIT_CODE) from exc

    _emit_output(result, cfg.as_json)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


async def _require_items(services: NestServices, item_ids: Sequence[str]) -> None:
    """Raise ItemNotFound for the first ID missing from the inventory."""
    known = {item.id for item in await services.item_store.list_items()}
    for item_id in item_ids:
        if item_id not in known:
            raise ItemNotFound(item_id)


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""

    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


app = typer.Typer(no_args_is_help=True, help="Nest insights command-line interface")
inbox_app = typer.Typer(help="Inbox summary and batch clearing")
links_app = typer.Typer(help="Link health monitoring and recovery")


@app.callback()
def main(
    ctx: typer.Context,
    database_url: str = typer.Option(
        settings.database.url,
        envvar="NEST_DATABASE_URL",
        help="SQLAlchemy database URL",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
) -> None:
    """Store global options for all commands."""

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    ctx.obj = CliConfig(database_url=database_url, as_json=as_json)


@app.command("patterns")
def patterns_command(ctx: typer.Context) -> None:
    """Show the learned activity pattern."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda services: services.analyzer.analyze_patterns())


@app.command("stale")
def stale_command(ctx: typer.Context) -> None:
    """List neglected inbox items."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda services: services.analyzer.identify_stale_content())


@app.command("clusters")
def clusters_command(ctx: typer.Context) -> None:
    """List inbox item clusters that could become collections."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda services: services.analyzer.detect_clusters())


@app.command("recommend")
def recommend_command(
    ctx: typer.Context,
    limit: int = typer.Option(5, min=1, help="Maximum number of items"),
) -> None:
    """List items worth reading next."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda services: services.analyzer.recommend_next(limit))


@app.command("duplicates")
def duplicates_command(ctx: typer.Context) -> None:
    """List likely duplicate item pairs."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda services: services.analyzer.find_duplicates())


@app.command("suggest")
def suggest_command(
    ctx: typer.Context,
    time_aware: bool = typer.Option(
        False, "--time-aware", help="Tailor suggestions to the current hour"
    ),
) -> None:
    """Show ranked suggestions."""
    cfg = _require_config(ctx)
    if time_aware:
        _run_command(cfg, lambda services: services.suggestion_engine.time_aware_suggestions())
    else:
        _run_command(cfg, lambda services: services.suggestion_engine.generate_suggestions())


@inbox_app.command("plan")
def inbox_plan_command(ctx: typer.Context) -> None:
    """Summarize the inbox and plan the batch actions that would clear it."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda services: services.suggestion_engine.summarize_and_plan_clear())


@inbox_app.command("clear")
def inbox_clear_command(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Plan and execute the batch actions that clear the inbox."""
    cfg = _require_config(ctx)

    async def invoke(services: NestServices) -> Any:
        engine = services.suggestion_engine
        plan = await engine.summarize_and_plan_clear()
        if not plan.actions:
            return {"summary": "Nothing to clear.", "items_processed": 0}
        affected = sum(len(action.items) for action in plan.actions)
        if not yes and not typer.confirm(
            f"Apply {len(plan.actions)} actions to {affected} items?"
        ):
            return {"summary": "Aborted.", "items_processed": 0}
        return await engine.execute_batch_actions(plan.actions)

    _run_command(cfg, invoke)


@links_app.command("schedule")
def links_schedule_command(ctx: typer.Context) -> None:
    """Check every link that is due and wait for the run to finish."""
    cfg = _require_config(ctx)

    async def invoke(services: NestServices) -> Any:
        monitor = services.link_monitor
        scheduled = await monitor.schedule_periodic_checks()
        await monitor.wait_until_idle()
        return {"scheduled": scheduled, "dead": await monitor.get_dead_links()}

    _run_command(cfg, invoke)


@links_app.command("check")
def links_check_command(
    ctx: typer.Context,
    item_ids: list[str] = typer.Argument(..., help="Item IDs to check now"),
) -> None:
    """Check specific items immediately."""
    cfg = _require_config(ctx)

    async def invoke(services: NestServices) -> Any:
        await _require_items(services, item_ids)
        results = await services.link_monitor.check_links_health(item_ids)
        await services.link_monitor.wait_until_idle()
        return results

    _run_command(cfg, invoke)


@links_app.command("report")
def links_report_command(ctx: typer.Context) -> None:
    """Show aggregate link health."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda services: services.link_monitor.get_health_report())


@links_app.command("rescue")
def links_rescue_command(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Item ID of a dead link"),
) -> None:
    """Look up an archived copy of a dead link."""
    cfg = _require_config(ctx)

    async def invoke(services: NestServices) -> Any:
        await _require_items(services, [item_id])
        return await services.link_monitor.rescue_dead_link(item_id)

    _run_command(cfg, invoke)


app.add_typer(inbox_app, name="inbox")
app.add_typer(links_app, name="links")


if __name__ == "__main__":
    app()
