import logging

import click

from newsdesk.db.session import init_db


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose):
    """Multi-source news reader: RSS, podcasts, Reddit, Hacker News, YouTube."""
    from newsdesk.config import SOURCES_PATH
    from newsdesk.sources.manager import seed_sources

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    seed_sources(SOURCES_PATH)


# --- Source management ---


@cli.group()
def sources():
    """Manage content sources."""
    pass


@sources.command("list")
@click.option("--type", "-t", "source_type", default=None, help="Only this source type")
def sources_list(source_type):
    """List configured sources."""
    from newsdesk.sources.manager import list_sources

    try:
        items = list_sources(source_type)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    if not items:
        click.echo("No sources found. Add one with: python cli.py sources add <type> <name> <value>")
        return
    for s in items:
        status = "ON" if s.enabled else "OFF"
        click.echo(f"  #{s.id} [{status}] {s.type:<10} {s.name}")
        click.echo(f"       {s.value}")


@sources.command("add")
@click.argument("source_type")
@click.argument("name")
@click.argument("value")
def sources_add(source_type, name, value):
    """Add a source. VALUE is a feed URL, subreddit, HN keyword or YouTube channel id."""
    from newsdesk.sources.manager import add_source

    try:
        s = add_source(source_type, name, value)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Added {s.type} source #{s.id}: {s.name}")


@sources.command("remove")
@click.argument("source_id", type=int)
def sources_remove(source_id):
    """Remove a source by ID."""
    from newsdesk.sources.manager import remove_source

    if remove_source(source_id):
        click.echo(f"Removed source #{source_id}")
    else:
        click.echo(f"Source #{source_id} not found", err=True)
        raise SystemExit(1)


@sources.command("toggle")
@click.argument("source_id", type=int)
def sources_toggle(source_id):
    """Enable or disable a source."""
    from newsdesk.sources.manager import get_source, toggle_source

    if not toggle_source(source_id):
        click.echo(f"Source #{source_id} not found", err=True)
        raise SystemExit(1)
    s = get_source(source_id)
    click.echo(f"Source #{source_id} is now {'ON' if s.enabled else 'OFF'}")


# --- Refresh ---


@cli.command()
@click.option("--type", "-t", "source_type", default=None, help="Refresh a single source type")
@click.option("--with-engagement", is_flag=True, help="Also scrape YouTube view counts (slow)")
def refresh(source_type, with_engagement):
    """Fetch new items from every enabled source."""
    if source_type:
        from newsdesk.refresh.orchestrator import refresh_source_type

        try:
            outcome = refresh_source_type(source_type, skip_engagement=not with_engagement)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(1)
        for r in outcome.results:
            click.echo(f"  {r.source}: {'ERROR ' + r.error if r.error else r.count}")
        click.echo(f"Total: {outcome.count} items")
        if outcome.error:
            raise SystemExit(1)
        return

    from newsdesk.client.progress import RefreshProgress
    from newsdesk.refresh.events import CompleteEvent, EngagementEvent, ErrorEvent, ProgressEvent
    from newsdesk.refresh.orchestrator import STEP_LABELS, RefreshRun, default_steps

    progress = RefreshProgress.for_sources(STEP_LABELS)
    run = RefreshRun(default_steps(skip_youtube_engagement=not with_engagement))
    for event in run.events():
        progress.apply(event)
        if isinstance(event, ProgressEvent):
            click.echo(f"[{event.index + 1}/{event.total}] {event.source}...")
        elif isinstance(event, CompleteEvent):
            click.echo(f"  {event.count} items")
        elif isinstance(event, ErrorEvent):
            click.echo(f"  ERROR: {event.error}")
        elif isinstance(event, EngagementEvent) and event.status == "calculating":
            click.echo("Calculating engagement...")
    click.echo(f"Done. {progress.total_count} items, {len(progress.failed)} failed steps")


# --- Articles ---


@cli.command()
@click.option("--source", "-s", default=None, help="Source type filter")
@click.option("--sort", type=click.Choice(["recent", "top"]), default="recent")
@click.option("--period", type=click.Choice(["day", "week", "month", "year", "all"]), default="all")
@click.option("--limit", "-l", type=int, default=20)
def articles(source, sort, period, limit):
    """List stored articles."""
    from newsdesk.articles.store import list_articles

    items = list_articles(source_type=source, limit=limit, sort=sort, period=period)
    if not items:
        click.echo("No articles. Run: python cli.py refresh")
        return
    for a in items:
        mark = " " if a.is_read else "*"
        engagement = f" [{a.engagement.score} | {a.engagement.raw}]" if a.engagement else ""
        click.echo(f"{mark} {a.id}  {a.source_name}: {a.title}{engagement}")


@cli.command()
@click.argument("article_id")
def read(article_id):
    """Mark an article as read."""
    from newsdesk.articles.store import mark_read

    if not mark_read(article_id):
        click.echo(f"Article {article_id} not found", err=True)
        raise SystemExit(1)
    click.echo(f"Marked {article_id} as read")


@cli.command()
@click.argument("article_id")
def engagement(article_id):
    """Look up engagement for one article now."""
    from newsdesk.articles.store import get_article, update_engagement
    from newsdesk.engagement.extractor import fetch_engagement_for_article

    a = get_article(article_id)
    if not a:
        click.echo(f"Article {article_id} not found", err=True)
        raise SystemExit(1)
    result = fetch_engagement_for_article(a.url, a.source_type)
    if result is None:
        click.echo("No engagement found")
        return
    update_engagement(article_id, result.score, result.raw, result.type)
    click.echo(f"{result.score}/100 ({result.raw})")


# --- Summaries ---


@cli.command()
@click.argument("article_id")
def summarize(article_id):
    """Summarize one article with the local model."""
    from newsdesk.articles.store import get_article, save_summary
    from newsdesk.summarize.ollama import SummarizationError, get_gateway

    a = get_article(article_id)
    if not a:
        click.echo(f"Article {article_id} not found", err=True)
        raise SystemExit(1)
    if a.summary is not None:
        click.echo(a.summary)
        return
    try:
        text = get_gateway().summarize(a.title, a.content)
    except SummarizationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    if not save_summary(article_id, text):
        a = get_article(article_id)
        text = a.summary if a else text
    click.echo(text)


@cli.command()
@click.option("--url", default="http://localhost:8000", help="API base URL")
@click.option("--source", "-s", default=None, help="Source type filter")
@click.option("--limit", "-l", type=int, default=10, help="Articles on screen")
def watch(url, source, limit):
    """Auto-summarize the first page of articles through a running API server."""
    import asyncio

    from newsdesk.client.api import ApiError, NewsClient
    from newsdesk.client.visibility import AutoSummarizer

    async def _run():
        async with NewsClient(url) as client:
            page = await client.list_articles(source=source, limit=limit)
            summarizer = AutoSummarizer(client.summarize)
            for a in page:
                summarizer.register(a.id)
                summarizer.tracker.observe(a.id, True)
            summarizer.set_articles(page)
            await summarizer.wait_idle()
            summarizer.close()
            return summarizer.state

    try:
        state = asyncio.run(_run())
    except ApiError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Processed {state.current} of {state.total} visible articles")


@cli.command()
def health():
    """Check the local model server."""
    from newsdesk.summarize.ollama import get_gateway

    gateway = get_gateway()
    if not gateway.health_check():
        click.echo("Ollama is not available", err=True)
        raise SystemExit(1)
    click.echo("Ollama is running. Models: " + (", ".join(gateway.list_models()) or "none"))


# --- API ---


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", "-p", type=int, default=8000, help="Port to bind to")
def api(host, port):
    """Start the FastAPI server."""
    import uvicorn

    from newsdesk.api.main import app

    click.echo(f"Starting API server at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    cli()
