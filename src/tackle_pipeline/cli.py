"""CLI interface for the tackle content pipeline."""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from tackle_pipeline.brief import parse_topic_key
from tackle_pipeline.config import PipelineConfig, load_config, merge_cli_overrides
from tackle_pipeline.errors import (
    CircuitBreakerOpen,
    PipelineError,
    ResearchError,
)
from tackle_pipeline.extractor import extract
from tackle_pipeline.models import JobStatus, PageType, RawDocument
from tackle_pipeline.publisher import rebuild_index
from tackle_pipeline.research import PerplexityClient
from tackle_pipeline.runner import PipelineRunner
from tackle_pipeline.sources import fetch_url

app = typer.Typer(
    name="tackle-pipeline",
    help="Generate, validate and publish fishing content pages from a job queue.",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from tackle_pipeline import __version__

        console.print(f"tackle-pipeline {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    pkg_logger = logging.getLogger("tackle_pipeline")
    pkg_logger.handlers.clear()
    pkg_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)
    )
    pkg_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _config(ctx: typer.Context) -> PipelineConfig:
    return ctx.obj if isinstance(ctx.obj, PipelineConfig) else load_config()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", help="Path to a .tackle-pipeline.toml file."),
    ] = None,
    content_dir: Annotated[
        Optional[Path],
        typer.Option("--content-dir", help="Content root (overrides [content].directory)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
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
) -> None:
    """Tackle content pipeline."""
    _configure_logging(verbose)
    config = load_config(config_path)
    ctx.obj = merge_cli_overrides(config, content_dir=content_dir)


@app.command()
def seed(
    ctx: typer.Context,
    page_type: Annotated[
        PageType,
        typer.Option("--type", "-t", help="Page type to seed."),
    ] = PageType.BLOG,
    count: Annotated[
        int,
        typer.Option("--count", "-n", min=1, help="Number of jobs to add."),
    ] = 5,
) -> None:
    """Add synthetic test jobs to the queue."""
    runner = PipelineRunner(_config(ctx))
    jobs = runner.seed_jobs(page_type, count)
    console.print(f"[green]Seeded {len(jobs)} {page_type.value} job(s)[/green]")
    for job in jobs:
        console.print(f"  - {job.topic_key} (priority {job.priority})")


@app.command()
def run(
    ctx: typer.Context,
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-l", min=1, help="Maximum number of jobs to process."),
    ] = None,
) -> None:
    """Process due jobs from the queue."""
    runner = PipelineRunner(_config(ctx))
    try:
        summary = runner.run_jobs(limit)
    except CircuitBreakerOpen as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    console.print(
        f"[bold]Processed {summary.processed} job(s):[/bold] "
        f"{summary.completed} completed, {summary.failed} failed, {summary.cancelled} cancelled"
    )


def _check_topic_key(value: str) -> str:
    try:
        parse_topic_key(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return value


@app.command()
def publish(
    ctx: typer.Context,
    topic_key: Annotated[
        str,
        typer.Option(
            "--topic-key",
            "-k",
            help="Topic key, e.g. species::snook::florida.",
            callback=_check_topic_key,
        ),
    ],
    source_url: Annotated[
        Optional[list[str]],
        typer.Option("--source-url", "-s", help="Source page to extract facts from."),
    ] = None,
) -> None:
    """Queue a single topic at top priority and run it immediately.

    The job is recorded like any other; a skipped or failed publish is
    reported but does not change the exit code.
    """
    runner = PipelineRunner(_config(ctx))
    job = runner.force_publish(topic_key, source_url or [])

    if job.status == JobStatus.COMPLETED:
        console.print(f"[green]Published[/green] {job.outputs.route_path}")
    elif job.status == JobStatus.CANCELLED:
        console.print(f"[yellow]Skipped:[/yellow] {job.error}")
    else:
        console.print(f"[red]Failed:[/red] job {job.job_id}")
        for error in job.outputs.errors:
            console.print(f"  - {error}", markup=False)


@app.command()
def status(ctx: typer.Context) -> None:
    """Print queue counts by status as JSON."""
    runner = PipelineRunner(_config(ctx))
    typer.echo(json.dumps(runner.queue.stats(), indent=2))


@app.command()
def retry(ctx: typer.Context) -> None:
    """Move failed jobs that still have attempts left back to pending."""
    runner = PipelineRunner(_config(ctx))
    requeued = runner.queue.requeue_failed()
    console.print(f"Requeued {len(requeued)} failed job(s)")


@app.command(name="rebuild-index")
def rebuild_index_cmd(
    ctx: typer.Context,
    page_type: Annotated[
        Optional[PageType],
        typer.Option("--type", "-t", help="Only rebuild this page type's index."),
    ] = None,
) -> None:
    """Rescan published documents and rewrite the content indexes."""
    runner = PipelineRunner(_config(ctx))
    types = [page_type] if page_type else list(PageType)
    for kind in types:
        index = rebuild_index(kind, runner.paths)
        console.print(f"  {kind.value}: {len(index.entries)} entries")


@app.command(name="extract")
def extract_cmd(
    ctx: typer.Context,
    source: Annotated[str, typer.Argument(help="Local HTML/markdown file or http(s) URL.")],
) -> None:
    """Run the extractor on a file or URL and print the result as JSON."""
    if source.startswith(("http://", "https://")):
        try:
            raw = fetch_url(source, _config(ctx).research.sources)
        except (OSError, PipelineError) as exc:
            console.print(f"[red]Error:[/red] Failed to fetch {source}: {exc}")
            raise typer.Exit(1)
    else:
        path = Path(source)
        if not path.is_file():
            console.print(f"[red]Error:[/red] File not found: {source}")
            raise typer.Exit(1)
        content = path.read_text(encoding="utf-8")
        if path.suffix.lower() in (".html", ".htm"):
            raw = RawDocument(url=path.resolve().as_uri(), html=content)
        else:
            raw = RawDocument(url=path.resolve().as_uri(), text=content)

    doc = extract(raw)
    typer.echo(doc.model_dump_json(indent=2, exclude={"html", "text"}))


@app.command()
def research(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Question to research.")],
) -> None:
    """Ask Perplexity a research question and print the answer with citations."""
    config = _config(ctx)
    try:
        result = PerplexityClient(config.research).research(query)
    except ResearchError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    console.print(f"[bold]{result.model}[/bold]")
    console.print(result.answer, markup=False)
    if result.citations:
        console.print()
        console.print("[bold]Citations:[/bold]")
        for url in result.citations:
            console.print(f"  - {url}", markup=False)


if __name__ == "__main__":
    app()
