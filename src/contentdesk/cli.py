"""CLI interface for contentdesk."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from contentdesk.actions import (
    delete_action,
    generate_cover_action,
    generate_cover_mutation,
    generate_seo_text_action,
    publish_action,
    set_status_action,
    upload_cover_mutation,
)
from contentdesk.backends import BackendRouter, build_router
from contentdesk.backends.ghost import GhostBackend
from contentdesk.config import ContentDeskConfig, load_config, merge_cli_overrides
from contentdesk.content.store import ArticleStore
from contentdesk.errors import PreconditionError, SourceUnavailableError
from contentdesk.registry.bulk import BulkAction, BulkExecutor, BulkProgress, BulkResult
from contentdesk.registry.columns import (
    COLUMN_CATALOGUE,
    Column,
    available_columns,
    load_column_config,
    save_column_config,
)
from contentdesk.registry.models import ContentItem, ItemStatus, Provenance, make_item_id
from contentdesk.registry.pipeline import FilterCriteria, SortField, SourceFilter, StatusTab
from contentdesk.registry.signals import InvalidationSignal
from contentdesk.registry.view import ContentView
from contentdesk.shared.images import STYLE_PREFIXES, ImageGenerator

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="contentdesk",
    help="Manage Ghost posts and local articles as one content registry.",
)
bulk_app = typer.Typer(help="Run one action on many items at once.")
article_app = typer.Typer(help="Manage locally authored articles.")
app.add_typer(bulk_app, name="bulk")
app.add_typer(article_app, name="article")

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from contentdesk import __version__

        console.print(f"contentdesk {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .contentdesk.toml file."),
    ] = None,
    store: Annotated[
        Optional[Path],
        typer.Option("--store", help="Directory holding the local article store."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-V", help="Log progress to stderr."),
    ] = False,
) -> None:
    """contentdesk - one registry over remote posts and local articles."""
    _setup_logging(verbose)
    cfg = load_config(config)
    ctx.obj = merge_cli_overrides(cfg, store_directory=str(store) if store else None)


# ── Shared option types ─────────────────────────────────────────

SiteOpt = Annotated[
    Optional[str], typer.Option("--site", "-s", help="Site (Ghost target) to work on.")
]
SourceOpt = Annotated[
    SourceFilter, typer.Option("--source", help="Only items from this source.")
]
TabOpt = Annotated[StatusTab, typer.Option("--tab", "-t", help="Status tab to show.")]
SearchOpt = Annotated[
    str, typer.Option("--search", "-q", help="Match title, keyword or SEO title.")
]
SortOpt = Annotated[Optional[SortField], typer.Option("--sort", help="Sort field.")]
AscOpt = Annotated[bool, typer.Option("--asc", help="Sort ascending.")]
LocalOnlyOpt = Annotated[
    bool, typer.Option("--local-only", help="Skip the remote CMS entirely.")
]


# ── Private helpers ─────────────────────────────────────────────


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def _open_view(
    cfg: ContentDeskConfig,
    site: Optional[str],
    *,
    source: SourceFilter = SourceFilter.ALL,
    tab: StatusTab = StatusTab.ALL,
    search: str = "",
    sort: Optional[SortField] = None,
    asc: bool = False,
    local_only: bool = False,
    page_size: Optional[int] = None,
    signal: Optional[InvalidationSignal] = None,
) -> tuple[BackendRouter, ContentView]:
    """Fetch both sources and open a filtered view over the registry."""
    site_id = cfg.resolve_site(site)
    router = build_router(cfg, site_id, local_only=local_only)
    registry = router.build_registry(site_id, signal=signal)
    try:
        asyncio.run(registry.refresh())
    except SourceUnavailableError as exc:
        _fail(f"could not load {exc.source} content: {exc}")

    if registry.dropped:
        console.print(f"[yellow]Skipped {registry.dropped} malformed record(s)[/yellow]")

    criteria = FilterCriteria(
        source=source,
        tab=tab,
        search=search,
        sort_field=sort or cfg.view.sort_field,
        sort_ascending=asc or (sort is None and cfg.view.sort_ascending),
    )
    view = ContentView(
        registry,
        criteria=criteria,
        page_size=page_size or cfg.view.page_size,
        signal=signal,
    )
    return router, view


def _fmt_date(item: ContentItem) -> str:
    return item.published_at.date().isoformat() if item.published_at else ""


def _fmt_pair(first: Optional[int], second: Optional[int]) -> str:
    if first is None and second is None:
        return ""
    return f"{first or 0}/{second or 0}"


def _cell(item: ContentItem, column: Column) -> str:
    """Text shown for one item in one column."""
    cid = column.id
    if cid == "source":
        return item.provenance.value
    if cid == "readability":
        return item.field_text("readability_score")
    if cid == "links":
        return _fmt_pair(item.internal_links_count, item.external_links_count)
    if cid == "images":
        return _fmt_pair(item.images_alt_count, item.images_count)
    if cid == "robots":
        return item.field_text("robots_meta")
    if cid == "canonical":
        return item.field_text("canonical_url")
    if cid == "published_at":
        return _fmt_date(item)
    if cid == "status":
        return item.status.value
    if cid == "cover":
        return "yes" if item.feature_image else ""
    if cid == "actions":
        return item.id
    return item.field_text(cid)


def _print_result(result: BulkResult, label: str) -> None:
    colour = "green" if result.all_succeeded else "yellow"
    console.print(f"[{colour}]{label}: {result.summary()} succeeded[/{colour}]")
    if result.skipped:
        console.print(f"  Skipped {result.skipped} ineligible item(s)")
    if result.failures:
        table = Table(title="Failures")
        table.add_column("Item")
        table.add_column("Reason")
        for failure in result.failures:
            table.add_row(failure.item_id, failure.reason)
        console.print(table)


def _run_bulk(
    view: ContentView,
    action: BulkAction,
    ids: Optional[list[str]],
    all_matching: bool,
    signal: InvalidationSignal,
) -> None:
    if all_matching:
        view.select_all_matching()
    elif ids:
        for item_id in dict.fromkeys(ids):
            if item_id not in view.registry:
                console.print(f"[yellow]Unknown item {item_id}, ignoring[/yellow]")
                continue
            view.toggle(item_id)
    else:
        _fail("select items with --id or --all-matching")

    executor = BulkExecutor(signal=signal)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(action.label, total=None)

        def on_progress(state: BulkProgress) -> None:
            progress.update(task, completed=state.current, total=state.total)

        try:
            result = asyncio.run(
                executor.run(
                    action,
                    view.selected_items(),
                    selection=view.selection,
                    on_progress=on_progress,
                )
            )
        except PreconditionError as exc:
            progress.stop()
            console.print(f"[red]Rejected:[/red] {exc.message}")
            for item_id in exc.item_ids:
                console.print(f"  - {item_id}")
            raise typer.Exit(1)

    _print_result(result, action.label)
    if not result.all_succeeded:
        raise typer.Exit(1)


# ── Commands ────────────────────────────────────────────────────


@app.command(name="list")
def list_cmd(
    ctx: typer.Context,
    site: SiteOpt = None,
    source: SourceOpt = SourceFilter.ALL,
    tab: TabOpt = StatusTab.ALL,
    search: SearchOpt = "",
    sort: SortOpt = None,
    asc: AscOpt = False,
    page: Annotated[int, typer.Option("--page", "-p", min=1, help="Page number.")] = 1,
    page_size: Annotated[
        Optional[int], typer.Option("--page-size", min=1, help="Items per page.")
    ] = None,
    local_only: LocalOnlyOpt = False,
) -> None:
    """Show one page of the merged content table."""
    cfg: ContentDeskConfig = ctx.obj
    _, view = _open_view(
        cfg,
        site,
        source=source,
        tab=tab,
        search=search,
        sort=sort,
        asc=asc,
        local_only=local_only,
        page_size=page_size,
    )
    current = view.go_to_page(page - 1)
    displayed = view.display_page()

    layout = load_column_config(cfg.store_path, cfg.columns.visible)
    columns = layout.visible_columns(cfg.module_flags())

    table = Table(title=f"{view.registry.site_id} content")
    for column in columns:
        table.add_column(column.label, no_wrap=column.id in ("actions", "status"))
    for item in displayed.items:
        table.add_row(*(_cell(item, column) for column in columns))
    console.print(table)

    if current.total_items:
        console.print(
            f"Showing {current.first_position}-{current.last_position} of "
            f"{current.total_items} (page {current.page_index + 1}/{current.total_pages})"
        )
    else:
        console.print("[yellow]No items match the current filters.[/yellow]")

    counts = view.tab_counts()
    console.print("  ".join(f"{t.value}: {counts[t]}" for t in StatusTab))


@app.command(name="columns")
def columns_cmd(
    ctx: typer.Context,
    toggle: Annotated[
        Optional[list[str]],
        typer.Option("--toggle", help="Show/hide a column (repeatable)."),
    ] = None,
    move: Annotated[
        Optional[str], typer.Option("--move", help="Column to move.")
    ] = None,
    to: Annotated[
        Optional[str], typer.Option("--to", help="Column whose place it takes.")
    ] = None,
) -> None:
    """Show the column layout, optionally changing it."""
    cfg: ContentDeskConfig = ctx.obj
    layout = load_column_config(cfg.store_path, cfg.columns.visible)
    known = {c.id for c in COLUMN_CATALOGUE}

    changed = False
    for column_id in toggle or []:
        if column_id not in known:
            _fail(f"unknown column '{column_id}'")
        layout.toggle(column_id)
        changed = True
    if move or to:
        if not (move and to):
            _fail("--move and --to must be given together")
        if move not in known or to not in known:
            _fail(f"unknown column in move '{move}' -> '{to}'")
        layout.reorder(move, to)
        changed = True
    if changed:
        save_column_config(layout, cfg.store_path)

    flags = cfg.module_flags()
    offered = {c.id: c for c in available_columns(flags)}
    table = Table(title="Columns")
    table.add_column("Id")
    table.add_column("Label")
    table.add_column("Group")
    table.add_column("Visible")
    for column_id in layout.order:
        column = offered.get(column_id)
        if column is None:
            continue
        mark = "required" if column.required else ("yes" if layout.is_visible(column_id) else "")
        table.add_row(column.id, column.label, column.group, mark)
    console.print(table)


@app.command(name="edit")
def edit_cmd(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Registry id, e.g. remote-123.")],
    seo_title: Annotated[Optional[str], typer.Option("--seo-title")] = None,
    seo_description: Annotated[Optional[str], typer.Option("--seo-description")] = None,
    slug: Annotated[Optional[str], typer.Option("--slug")] = None,
    site: SiteOpt = None,
    local_only: LocalOnlyOpt = False,
) -> None:
    """Change SEO fields of one item and save them to its source."""
    cfg: ContentDeskConfig = ctx.obj
    updates = {
        "seo_title": seo_title,
        "seo_description": seo_description,
        "slug": slug,
    }
    updates = {field: value for field, value in updates.items() if value is not None}
    if not updates:
        _fail("nothing to change; pass --seo-title, --seo-description or --slug")

    router, view = _open_view(cfg, site, local_only=local_only)
    if item_id not in view.registry:
        _fail(f"no item '{item_id}' in {view.registry.site_id}")
    for field, value in updates.items():
        view.set_field(item_id, field, value)
    if not len(view.edits):
        console.print("[yellow]Values unchanged, nothing to save.[/yellow]")
        return

    result = asyncio.run(view.edits.commit_all(router.persist))
    colour = "green" if result.all_succeeded else "red"
    console.print(f"[{colour}]Saved {result.succeeded}/{result.total}[/{colour}]")
    if not result.all_succeeded:
        raise typer.Exit(1)


# ── bulk ────────────────────────────────────────────────────────

IdsOpt = Annotated[
    Optional[list[str]], typer.Option("--id", help="Item id to include (repeatable).")
]
AllMatchingOpt = Annotated[
    bool, typer.Option("--all-matching", help="Every item matching the filters.")
]


@bulk_app.command(name="status")
def bulk_status(
    ctx: typer.Context,
    status: Annotated[ItemStatus, typer.Argument(help="New status.")],
    ids: IdsOpt = None,
    all_matching: AllMatchingOpt = False,
    site: SiteOpt = None,
    source: SourceOpt = SourceFilter.ALL,
    tab: TabOpt = StatusTab.ALL,
    search: SearchOpt = "",
    local_only: LocalOnlyOpt = False,
) -> None:
    """Set the status of the selected items."""
    signal = InvalidationSignal()
    router, view = _open_view(
        ctx.obj, site, source=source, tab=tab, search=search, local_only=local_only, signal=signal
    )
    _run_bulk(view, set_status_action(router, status), ids, all_matching, signal)


@bulk_app.command(name="publish")
def bulk_publish(
    ctx: typer.Context,
    ids: IdsOpt = None,
    all_matching: AllMatchingOpt = False,
    site: SiteOpt = None,
    source: SourceOpt = SourceFilter.ALL,
    tab: TabOpt = StatusTab.ALL,
    search: SearchOpt = "",
) -> None:
    """Publish the selected items (local articles are pushed to Ghost)."""
    signal = InvalidationSignal()
    router, view = _open_view(ctx.obj, site, source=source, tab=tab, search=search, signal=signal)
    _run_bulk(view, publish_action(router), ids, all_matching, signal)


@bulk_app.command(name="delete")
def bulk_delete(
    ctx: typer.Context,
    ids: IdsOpt = None,
    all_matching: AllMatchingOpt = False,
    site: SiteOpt = None,
    source: SourceOpt = SourceFilter.ALL,
    tab: TabOpt = StatusTab.ALL,
    search: SearchOpt = "",
    local_only: LocalOnlyOpt = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
) -> None:
    """Delete the selected items from their source."""
    if not yes:
        typer.confirm("Delete the selected items? This cannot be undone", abort=True)
    signal = InvalidationSignal()
    router, view = _open_view(
        ctx.obj, site, source=source, tab=tab, search=search, local_only=local_only, signal=signal
    )
    _run_bulk(view, delete_action(router), ids, all_matching, signal)


@bulk_app.command(name="seo")
def bulk_seo(
    ctx: typer.Context,
    ids: IdsOpt = None,
    all_matching: AllMatchingOpt = False,
    site: SiteOpt = None,
    source: SourceOpt = SourceFilter.ALL,
    tab: TabOpt = StatusTab.ALL,
    search: SearchOpt = "",
    local_only: LocalOnlyOpt = False,
    model: Annotated[
        Optional[str], typer.Option("--model", "-m", help="Claude model override.")
    ] = None,
) -> None:
    """Draft SEO titles and descriptions with Claude and save them."""
    cfg: ContentDeskConfig = merge_cli_overrides(ctx.obj, model=model)
    signal = InvalidationSignal()
    router, view = _open_view(
        cfg, site, source=source, tab=tab, search=search, local_only=local_only, signal=signal
    )
    _run_bulk(view, generate_seo_text_action(router, model=cfg.llm.model), ids, all_matching, signal)


@bulk_app.command(name="cover")
def bulk_cover(
    ctx: typer.Context,
    image: Annotated[
        Optional[Path],
        typer.Option(
            "--image", "-i", exists=True, dir_okay=False,
            help="Use this file instead of generating covers.",
        ),
    ] = None,
    style: Annotated[
        Optional[str], typer.Option("--style", help="Generated cover style.")
    ] = None,
    ids: IdsOpt = None,
    all_matching: AllMatchingOpt = False,
    site: SiteOpt = None,
    source: SourceOpt = SourceFilter.ALL,
    tab: TabOpt = StatusTab.ALL,
    search: SearchOpt = "",
) -> None:
    """Generate a cover for each selected post with Gemini, or attach --image."""
    cfg: ContentDeskConfig = ctx.obj
    if style is not None and style not in STYLE_PREFIXES:
        _fail(f"unknown style {style} (choose from {', '.join(STYLE_PREFIXES)})")
    generator = ImageGenerator(style=style)
    if image is None and not generator.is_configured():
        _fail("set GOOGLE_AI_API_KEY to generate covers, or pass --image")

    signal = InvalidationSignal()
    router, view = _open_view(cfg, site, source=source, tab=tab, search=search, signal=signal)
    remote = router.remote
    if not isinstance(remote, GhostBackend):
        _fail("covers need a configured Ghost target")
    if image is not None:
        mutation = upload_cover_mutation(remote, image)
    else:
        mutation = generate_cover_mutation(remote, generator, cfg.store_path / "covers")
    _run_bulk(view, generate_cover_action(mutation), ids, all_matching, signal)


# ── article ─────────────────────────────────────────────────────


@article_app.command(name="add")
def article_add(
    ctx: typer.Context,
    title: Annotated[str, typer.Option("--title", help="Article title.")],
    keyword: Annotated[Optional[str], typer.Option("--keyword", "-k")] = None,
    body_file: Annotated[
        Optional[Path],
        typer.Option("--body-file", exists=True, dir_okay=False, help="Markdown body."),
    ] = None,
    site: SiteOpt = None,
) -> None:
    """Create a draft article in the local store."""
    cfg: ContentDeskConfig = ctx.obj
    body = body_file.read_text(encoding="utf-8") if body_file else ""
    store = ArticleStore(cfg.store_path)
    article = store.create(cfg.resolve_site(site), title, keyword=keyword, body=body)
    console.print(f"[green]Created[/green] {make_item_id(Provenance.LOCAL, article.id)}")
