"""pagerev CLI: log events, check integrity and list due revisions."""

import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from pagerev.application.config import policy_from_settings, resolve_config
from pagerev.domain.errors import PagerevError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="pagerev: spaced-revision schedules rebuilt from study logs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage pagerev configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

StoreOption = Annotated[
    Path | None, typer.Option("--store", help="Page store (.json or .yaml). Defaults to config.")
]


def _load_settings(overrides: dict[str, Any] | None = None):
    try:
        return resolve_config(overrides)
    except ValidationError as e:
        typer.secho(f"Error: invalid configuration: {e}", fg="red", err=True)
        raise typer.Exit(1)


def _resolve(ctx: typer.Context, **overrides: Any):
    overrides["verbose"] = ctx.obj.get("verbose_bonus", 0) if ctx.obj else 0
    return _load_settings(overrides)


def _fail(e: PagerevError) -> None:
    typer.secho(f"Error: {e}", fg="red", err=True)
    raise typer.Exit(1)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _store(settings):
    from pagerev.infrastructure.file_store import JsonPageStore

    return JsonPageStore(settings.store_path)


def _find_page(pages, page_id: str):
    for index, page in enumerate(pages):
        if page.page_id == page_id:
            return index, page
    typer.secho(f"No page '{page_id}' in store.", fg="red", err=True)
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for pagerev."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def ingest(
    ctx: typer.Context,
    events_file: Annotated[
        Path, typer.Argument(help="JSON or YAML list of parsed study events.")
    ],
    store: StoreOption = None,
    mode: Annotated[
        str | None, typer.Option(help="Schedule mode: fast, balanced, deep.")
    ] = None,
    target_count: Annotated[
        int | None, typer.Option(help="Maximum revisions to schedule (0 = whole table).")
    ] = None,
    skip_failures: Annotated[
        bool,
        typer.Option("--skip-failures", help="Skip events that fail instead of aborting."),
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show results without saving.")
    ] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output results as JSON.")] = False,
):
    """[bold green]Log[/bold green] a batch of study events and reschedule their pages."""
    from pagerev.application.ingestion import FailurePolicy
    from pagerev.application.ingestion import ingest as ingest_events
    from pagerev.infrastructure.file_store import load_events

    settings = _resolve(
        ctx,
        store_path=store,
        mode=mode,
        target_count=target_count,
        failure_policy="skip" if skip_failures else None,
    )

    try:
        policy = policy_from_settings(settings)
        repo = _store(settings)
        events = load_events(events_file)
        outcome = ingest_events(
            events,
            repo.load_all(),
            policy,
            failure_policy=FailurePolicy(settings.failure_policy),
        )
        if not dry_run:
            repo.save_all(outcome.pages)
    except PagerevError as e:
        _fail(e)
        return

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "results": [asdict(r) for r in outcome.results],
                    "failures": [asdict(f) for f in outcome.failures],
                    "saved": not dry_run,
                },
                indent=2,
            )
        )
        return

    for result in outcome.results:
        typer.echo(f"{result.message} (revisions: {result.new_revision_count})")
    for failure in outcome.failures:
        typer.secho(
            f"Skipped event #{failure.index} ({failure.page_id}): {failure.error}",
            fg="yellow",
        )
    if dry_run:
        typer.secho("[DRY RUN] Nothing saved.", fg="yellow")


@app.command()
def check(
    ctx: typer.Context,
    store: StoreOption = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Report drift without saving repairs.")
    ] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Replay every page's logs and repair drifted schedule state."""
    from pagerev.application.integrity import check as check_pages
    from pagerev.domain.errors import IntegrityCheckError

    settings = _resolve(ctx, store_path=store)

    try:
        policy = policy_from_settings(settings)
        repo = _store(settings)
        pages = repo.load_all()
        report = check_pages(pages, policy)
    except IntegrityCheckError as e:
        logger.error(f"{e}: {e.__cause__}. Stored state left as is.")
        raise typer.Exit(1)
    except PagerevError as e:
        _fail(e)
        return

    if report.changed and not dry_run:
        try:
            repo.save_all(report.pages)
        except PagerevError as e:
            _fail(e)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "changed": report.changed,
                    "pages": len(report.pages),
                    "drifted": report.drifted_page_ids,
                    "saved": report.changed and not dry_run,
                },
                indent=2,
            )
        )
    elif report.changed:
        typer.secho(
            f"Repaired {len(report.drifted_page_ids)} page(s): "
            f"{', '.join(report.drifted_page_ids)}",
            fg="yellow",
        )
    else:
        typer.secho(f"All {len(report.pages)} pages consistent.", fg="green")


@app.command()
def due(
    ctx: typer.Context,
    store: StoreOption = None,
    filter_type: Annotated[
        str, typer.Option("--filter", help="all, due, upcoming or mastered.")
    ] = "all",
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List studied pages and topics with their next revision."""
    from pagerev.application.due import FilterType, collect_schedule_items, filter_items

    try:
        wanted = FilterType(filter_type.lower())
    except ValueError:
        typer.secho(f"Unknown filter '{filter_type}'.", fg="red", err=True)
        raise typer.Exit(2)

    settings = _resolve(ctx, store_path=store)
    try:
        pages = _store(settings).load_all()
    except PagerevError as e:
        _fail(e)
        return

    items = filter_items(collect_schedule_items(pages), wanted)

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "page_id": i.page_id,
                        "topic": i.topic,
                        "title": i.title,
                        "status": i.status.value,
                        "revision_count": i.revision_count,
                        "last_studied_at": _iso(i.last_studied_at),
                        "next_revision_at": _iso(i.next_revision_at),
                    }
                    for i in items
                ],
                indent=2,
            )
        )
        return

    if not items:
        typer.secho("Nothing scheduled.", fg="yellow")
        return

    colors = {"DUE": "red", "UPCOMING": "cyan", "MASTERED": "green"}
    for item in items:
        label = item.title if item.topic is None else f"{item.title} / {item.topic}"
        when = _iso(item.next_revision_at) or "-"
        typer.secho(
            f"[{item.status.value:<8}] {item.page_id:<8} {label}  next: {when}",
            fg=colors[item.status.value],
        )


@app.command()
def undo(
    ctx: typer.Context,
    page_id: Annotated[str, typer.Argument(help="Page to undo the last log of.")],
    topic: Annotated[
        str | None, typer.Option(help="Undo the topic's last log instead of the page's.")
    ] = None,
    store: StoreOption = None,
):
    """Remove the most recent log for a page (or topic) and reschedule."""
    from pagerev.application.log_editing import undo_last

    settings = _resolve(ctx, store_path=store)
    try:
        policy = policy_from_settings(settings)
        repo = _store(settings)
        pages = repo.load_all()
        index, page = _find_page(pages, page_id)
        pages[index] = undo_last(page, policy, topic=topic)
        repo.save_all(pages)
    except PagerevError as e:
        _fail(e)
        return

    updated = pages[index]
    typer.secho(
        f"Undone. Page {page_id} revisions: {updated.revision_count}, "
        f"next: {_iso(updated.next_revision_at) or '-'}",
        fg="green",
    )


@app.command("delete-log")
def delete_log_cmd(
    ctx: typer.Context,
    page_id: Annotated[str, typer.Argument(help="Page owning the log.")],
    log_id: Annotated[str, typer.Argument(help="Id of the log entry to delete.")],
    store: StoreOption = None,
):
    """Delete one log entry and reschedule its page."""
    from pagerev.application.log_editing import delete_log

    settings = _resolve(ctx, store_path=store)
    try:
        policy = policy_from_settings(settings)
        repo = _store(settings)
        pages = repo.load_all()
        index, page = _find_page(pages, page_id)
        pages[index] = delete_log(page, log_id, policy)
        repo.save_all(pages)
    except PagerevError as e:
        _fail(e)
        return

    typer.secho(f"Deleted log {log_id} from page {page_id}.", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = _load_settings()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


if __name__ == "__main__":
    app()
