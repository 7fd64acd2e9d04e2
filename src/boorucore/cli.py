"""Command-line interface for boorucore."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

import click
import structlog

from boorucore import __version__
from boorucore.config import load_config
from boorucore.container import BooruContainer
from boorucore.download import DownloadOptions
from boorucore.errors import BooruError
from boorucore.observability import configure_logging
from boorucore.protocols import Sort
from boorucore.query import Query
from boorucore.sites import ADAPTERS

logger = structlog.get_logger(__name__)

SITE_CHOICE = click.Choice(sorted(ADAPTERS), case_sensitive=False)


def _post_json(post: Any) -> str:
    if hasattr(post, "model_dump_json"):
        return post.model_dump_json()
    return json.dumps(post, default=str)


def _build_query(
    container: BooruContainer,
    site: str,
    tags: Tuple[str, ...],
    rating: Optional[str],
    sort: Optional[str],
    blacklist: Tuple[str, ...],
    limit: int,
    page: int,
) -> Query:
    builder = container.client(site).builder().tags(tags).blacklist_tags(blacklist).limit(limit).page(page)
    if rating:
        builder.rating(rating)
    if sort:
        builder.sort(sort)
    return builder.build()


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: str) -> None:
    """boorucore - query booru image boards from the command line."""
    ctx.ensure_object(dict)
    loaded = load_config(Path(config) if config else None)
    loaded.monitoring.log_level = log_level
    configure_logging(loaded.monitoring)
    ctx.obj["config"] = loaded


@cli.command()
@click.argument("site", type=SITE_CHOICE)
@click.argument("tags", nargs=-1)
@click.option("--rating", help="Site rating, e.g. general or explicit")
@click.option("--sort", type=click.Choice([s.value for s in Sort]), help="Result ordering")
@click.option("--limit", default=20, show_default=True, help="Posts per page")
@click.option("--page", default=0, show_default=True, help="Starting page (0-based)")
@click.option("--max-posts", type=int, help="Stream across pages until this many posts")
@click.option("--blacklist", multiple=True, help="Exclude a tag (repeatable)")
@click.pass_context
def search(
    ctx: click.Context,
    site: str,
    tags: Tuple[str, ...],
    rating: Optional[str],
    sort: Optional[str],
    limit: int,
    page: int,
    max_posts: Optional[int],
    blacklist: Tuple[str, ...],
) -> None:
    """Search SITE for TAGS and print posts as JSON lines."""

    async def run_search() -> None:
        async with BooruContainer(ctx.obj["config"]).lifecycle() as container:
            query = _build_query(container, site, tags, rating, sort, blacklist, limit, page)
            client = container.client(site)
            if max_posts is None:
                for post in await client.get(query):
                    click.echo(_post_json(post))
            else:
                async for post in client.stream(query, max_posts=max_posts):
                    click.echo(_post_json(post))

    try:
        asyncio.run(run_search())
    except (BooruError, ValueError, TypeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("site", type=SITE_CHOICE)
@click.argument("prefix")
@click.option("--limit", default=10, show_default=True, help="Maximum suggestions")
@click.pass_context
def suggest(ctx: click.Context, site: str, prefix: str, limit: int) -> None:
    """Print tag suggestions for PREFIX on SITE."""

    async def run_suggest() -> List[Any]:
        async with BooruContainer(ctx.obj["config"]).lifecycle() as container:
            return await container.client(site).autocomplete(prefix, limit)

    try:
        suggestions = asyncio.run(run_suggest())
    except BooruError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for suggestion in suggestions:
        count = "" if suggestion.post_count is None else f"\t{suggestion.post_count}"
        click.echo(f"{suggestion.name}{count}")


@cli.command()
@click.argument("site", type=SITE_CHOICE)
@click.argument("tags", nargs=-1)
@click.option("--dest", "-d", type=click.Path(file_okay=False), default=".", show_default=True)
@click.option("--max-posts", default=10, show_default=True)
@click.option("--concurrency", default=4, show_default=True)
@click.option("--overwrite", is_flag=True, help="Replace files that already exist")
@click.option("--by-rating", is_flag=True, help="Save into one subdirectory per rating")
@click.option("--template", help="Filename template using {id}, {md5} and {ext}")
@click.pass_context
def download(
    ctx: click.Context,
    site: str,
    tags: Tuple[str, ...],
    dest: str,
    max_posts: int,
    concurrency: int,
    overwrite: bool,
    by_rating: bool,
    template: Optional[str],
) -> None:
    """Download up to MAX_POSTS posts matching TAGS into DEST."""

    async def run_download() -> int:
        options = DownloadOptions(overwrite=overwrite, filename_template=template, organize_by_rating=by_rating)
        async with BooruContainer(ctx.obj["config"]).lifecycle() as container:
            client = container.client(site)
            query = client.builder().tags(tags).build()
            posts = await client.stream(query, max_posts=max_posts).collect()
            results = await container.downloader(options).download_posts(posts, dest, concurrency=concurrency)

        failures = 0
        for post, result in zip(posts, results):
            if isinstance(result, BooruError):
                failures += 1
                click.echo(f"{post.id}\tfailed\t{result}", err=True)
            else:
                click.echo(f"{post.id}\t{'skipped' if result.skipped else 'saved'}\t{result.path}")
        return failures

    try:
        failures = asyncio.run(run_download())
    except BooruError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if failures:
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
