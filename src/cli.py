"""CLI interface for inkwell."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from inkwell.config import InkwellConfig, load_config, merge_cli_overrides
from inkwell.content.access import Actor
from inkwell.content.lifecycle import PostLifecycle
from inkwell.content.moderation import CommentModeration
from inkwell.content.slugs import generate_slug
from inkwell.content.stats import StatsAggregator
from inkwell.content.store import ContentStore
from inkwell.seo import analyze as analyze_post
from inkwell.seo import (
    build_robots_txt,
    build_sitemap,
    keywords,
    meta_description,
    structured_data,
)
from inkwell.shared.errors import InkwellError, InputValidationError

app = typer.Typer(
    name="inkwell",
    help="Manage blog content: publishing, moderation, statistics, and SEO artifacts.",
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to an .inkwell.toml config file."),
]
StoreOption = Annotated[
    Optional[Path],
    typer.Option("--store", "-s", help="Directory holding the content store."),
]
ActorOption = Annotated[
    int,
    typer.Option("--actor", "-a", help="Admin user id to act as."),
]
BaseUrlOption = Annotated[
    Optional[str],
    typer.Option("--base-url", help="Public site root used in generated URLs."),
]

ANONYMOUS_AUTHOR = "Anonymous"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from inkwell import __version__

        console.print(f"inkwell {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Show debug logging."),
    ] = False,
) -> None:
    """Inkwell - content lifecycle and moderation for a blog."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(
    config_path: Path | None,
    store_dir: Path | None,
    base_url: str | None = None,
) -> tuple[InkwellConfig, ContentStore]:
    config = merge_cli_overrides(
        load_config(config_path),
        store_directory=str(store_dir) if store_dir is not None else None,
        base_url=base_url,
    )
    return config, ContentStore(Path(config.store.directory))


@contextmanager
def _report_errors() -> Iterator[None]:
    try:
        yield
    except InkwellError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _parse_when(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise InputValidationError(f"at: invalid ISO timestamp {value!r}") from exc


@app.command()
def slugify(text: Annotated[str, typer.Argument(help="Text to turn into a slug.")]) -> None:
    """Print the URL slug for TEXT."""
    console.print(generate_slug(text) or "[dim](empty)[/dim]")


@app.command()
def stats(
    days: Annotated[int, typer.Option("--days", "-d", help="Analytics window in days.")] = 30,
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
    actor_id: ActorOption = 1,
) -> None:
    """Show dashboard counts and recent activity."""
    with _report_errors():
        _, store = _load(config_path, store_dir)
        aggregator = StatsAggregator(store)
        actor = Actor.admin(actor_id)
        dashboard = aggregator.dashboard(actor)
        report = aggregator.analytics(actor, days=days)

    counts = Table(title="Dashboard")
    counts.add_column("Metric")
    counts.add_column("Count", justify="right")
    for name, value in dashboard.model_dump().items():
        counts.add_row(name.replace("_", " ").capitalize(), str(value))
    console.print(counts)

    console.print(
        f"\nLast {report.days} day(s): "
        f"{report.posts_created} post(s), "
        f"{report.comments_created} comment(s), "
        f"{report.users_registered} new user(s)"
    )
    if report.posts_by_category:
        by_category = Table(title="Published posts by category")
        by_category.add_column("Category")
        by_category.add_column("Posts", justify="right")
        for name, count in report.posts_by_category.items():
            by_category.add_row(name, str(count))
        console.print(by_category)
    if report.posts_by_month:
        by_month = Table(title="Published posts by month")
        by_month.add_column("Month")
        by_month.add_column("Posts", justify="right")
        for month, count in report.posts_by_month.items():
            by_month.add_row(month, str(count))
        console.print(by_month)


@app.command()
def sitemap(
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the sitemap here instead of stdout."),
    ] = None,
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
    base_url: BaseUrlOption = None,
) -> None:
    """Render sitemap.xml for every visible post."""
    with _report_errors():
        config, store = _load(config_path, store_dir, base_url)
        xml = build_sitemap(store.posts.query(), config.site, datetime.now(tz=UTC))
    if output is None:
        typer.echo(xml, nl=False)
    else:
        output.write_text(xml, encoding="utf-8")
        console.print(f"[green]Wrote[/green] {output}")


@app.command()
def robots(config_path: ConfigOption = None, base_url: BaseUrlOption = None) -> None:
    """Print robots.txt."""
    config = merge_cli_overrides(load_config(config_path), base_url=base_url)
    typer.echo(build_robots_txt(config.site), nl=False)


@app.command("structured-data")
def structured_data_command(
    post_id: Annotated[int, typer.Argument(help="Post id.")],
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
    base_url: BaseUrlOption = None,
    actor_id: ActorOption = 1,
) -> None:
    """Print the schema.org BlogPosting JSON-LD for a post."""
    with _report_errors():
        config, store = _load(config_path, store_dir, base_url)
        post = PostLifecycle(store, settings=config.content).get(Actor.admin(actor_id), post_id)
    author = store.users.get(post.author_id)
    author_name = author.display_name if author is not None else ANONYMOUS_AUTHOR
    typer.echo(structured_data(post, author_name=author_name, site=config.site))


@app.command()
def analyze(
    post_id: Annotated[int, typer.Argument(help="Post id.")],
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
    actor_id: ActorOption = 1,
) -> None:
    """Run the SEO checklist over a post and suggest meta fields."""
    with _report_errors():
        config, store = _load(config_path, store_dir)
        post = PostLifecycle(store, settings=config.content).get(Actor.admin(actor_id), post_id)
    result = analyze_post(post)
    if result.passed:
        console.print(f"[green]Post {post_id} passes every SEO check.[/green]")
    else:
        console.print(f"[bold]Post {post_id}[/bold] ({escape(post.title)})")
        for recommendation in result.recommendations:
            console.print(f"  - {recommendation}")

    if not post.meta_description:
        suggestion = meta_description(post.content, config.content.meta_description_length)
        console.print(f"\nSuggested meta description: {escape(suggestion)}")
    if not post.meta_keywords:
        words = keywords(post.content, config.content.keyword_limit)
        console.print(f"Suggested keywords: {escape(', '.join(words))}")


@app.command()
def publish(
    post_id: Annotated[int, typer.Argument(help="Post id.")],
    at: Annotated[
        Optional[str],
        typer.Option(
            "--at",
            help="Publication time (ISO 8601, UTC unless an offset is given); "
            "a future time schedules the post.",
        ),
    ] = None,
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
    actor_id: ActorOption = 1,
) -> None:
    """Publish a post."""
    with _report_errors():
        when = _parse_when(at) if at else None
        config, store = _load(config_path, store_dir)
        lifecycle = PostLifecycle(store, settings=config.content)
        post = lifecycle.publish(Actor.admin(actor_id), post_id, at=when)
    console.print(f"[green]Published[/green] {post.slug} at {post.published_at.isoformat()}")


@app.command()
def unpublish(
    post_id: Annotated[int, typer.Argument(help="Post id.")],
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
    actor_id: ActorOption = 1,
) -> None:
    """Return a post to draft."""
    with _report_errors():
        config, store = _load(config_path, store_dir)
        post = PostLifecycle(store, settings=config.content).unpublish(Actor.admin(actor_id), post_id)
    console.print(f"[yellow]Unpublished[/yellow] {post.slug}")


@app.command()
def approve(
    comment_ids: Annotated[list[int], typer.Argument(help="Comment ids.")],
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
    actor_id: ActorOption = 1,
) -> None:
    """Approve comments."""
    with _report_errors():
        _, store = _load(config_path, store_dir)
        found = CommentModeration(store).bulk_approve(Actor.admin(actor_id), comment_ids)
    console.print(f"Approved {found} of {len(set(comment_ids))} comment(s)")


@app.command()
def reject(
    comment_ids: Annotated[list[int], typer.Argument(help="Comment ids.")],
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
    actor_id: ActorOption = 1,
) -> None:
    """Reject comments."""
    with _report_errors():
        _, store = _load(config_path, store_dir)
        found = CommentModeration(store).bulk_reject(Actor.admin(actor_id), comment_ids)
    console.print(f"Rejected {found} of {len(set(comment_ids))} comment(s)")
