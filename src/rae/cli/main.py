"""Typer CLI entry point."""

from __future__ import annotations

import typer

from rae.config import Settings
from rae.engine import InvalidTransitionError, RoadAggregationEngine, UnknownItemError
from rae.store import build_store
from rae.utils.logging import configure_logging, get_logger


app = typer.Typer(help="Road aggregation and SLA deadline CLI")
cache_app = typer.Typer(help="Persistent cache utilities")
app.add_typer(cache_app, name="cache")

logger = get_logger(__name__)


@app.callback()
def main() -> None:
    """Initialize logging for all commands."""
    settings = Settings()
    configure_logging(settings.log_level)


def _engine() -> RoadAggregationEngine:
    engine = RoadAggregationEngine.from_settings(Settings())
    if not engine.refresh():
        typer.echo("Reporting API unreachable: no data loaded.", err=True)
    return engine


@app.command("roads")
def roads() -> None:
    """List one row per road with severity, status and deadline."""
    engine = _engine()
    rows = engine.aggregates()
    if not rows:
        typer.echo("No active reports.")
        return

    for row in rows:
        contractors = ", ".join(row.contractor_ids) or "-"
        typer.echo(
            f"{row.road_name} | {row.district} | potholes={row.num_potholes} "
            f"patches={row.num_patches} | {row.severity.value} | {row.status.value} | "
            f"reported {row.avg_reported_time} | due {row.deadline} | "
            f"contractors {contractors} | action={row.action}"
        )


@app.command("summary")
def summary() -> None:
    """Show status counts."""
    counts = _engine().summary()
    typer.echo(
        f"Reported {counts.reported} | Assigned {counts.assigned} | "
        f"In Progress {counts.in_progress} | Pending {counts.pending} | "
        f"Verified {counts.verified}"
    )


@app.command("history")
def history() -> None:
    """Verified repairs grouped by road."""
    engine = RoadAggregationEngine.from_settings(Settings())
    rows = engine.history_rows()
    if not rows:
        typer.echo("No verified repairs yet.")
        return
    for row in rows:
        typer.echo(
            f"{row.road_name} | potholes={row.potholes} patches={row.patches} | "
            f"{row.severity} | last fixed {row.last_fixed} | {', '.join(row.contractors) or '-'}"
        )


@app.command("assign")
def assign(
    road: str = typer.Argument(..., help="Road name as shown by `rae roads`"),
    contractor: str = typer.Option(..., help="Contractor id"),
) -> None:
    """Assign every unassigned defect on a road."""
    result = _engine().assign_road(road, contractor)
    typer.echo(f"Assigned {len(result.succeeded)}/{result.attempted} on {road}.")
    if result.failed:
        typer.echo(f"Failed: {', '.join(result.failed)}", err=True)
        raise typer.Exit(1)


@app.command("verify")
def verify(road: str = typer.Argument(..., help="Road name as shown by `rae roads`")) -> None:
    """Verify every defect on a road that is pending verification."""
    result = _engine().verify_road(road)
    typer.echo(f"Verified {len(result.succeeded)}/{result.attempted} on {road}.")
    if result.failed:
        typer.echo(f"Failed: {', '.join(result.failed)}", err=True)
        raise typer.Exit(1)


@app.command("reject")
def reject(
    item: str = typer.Argument(..., help="Defect id"),
    remarks: str = typer.Option("", help="Operator remarks sent with the rejection"),
) -> None:
    """Send a pending defect back to In Progress."""
    try:
        ok = _engine().reject_item(item, remarks)
    except (UnknownItemError, InvalidTransitionError) as exc:
        typer.echo(f"Cannot reject: {exc}", err=True)
        raise typer.Exit(1)
    if not ok:
        typer.echo("Reject failed: reporting API unreachable.", err=True)
        raise typer.Exit(1)
    typer.echo(f"{item} returned to In Progress.")


@cache_app.command("check")
def cache_check() -> None:
    """Check the configured cache backend is readable and writable."""
    settings = Settings()
    try:
        store = build_store(settings)
        store.set("rae.healthcheck", "ok")
        value = store.get("rae.healthcheck")
    except Exception as exc:
        logger.error("cache.check.failed: %s", exc)
        typer.echo(f"Cache check failed: {exc}", err=True)
        raise typer.Exit(1)
    logger.info("cache.check.ok backend=%s", settings.cache_backend)
    typer.echo(f"{settings.cache_backend} cache ok ({value})")


if __name__ == "__main__":
    app()
