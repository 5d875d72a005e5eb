"""Command-line entry points for the story pipeline."""

import json
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

import typer
from rich import print as rprint

from .config import configure_logging, get_settings
from .errors import StoryError
from .models import StoryRecord
from .pipeline import StoryPipeline

app = typer.Typer(help="Turn web article URLs into structured story summaries.")


def _build_pipeline() -> StoryPipeline:
    settings = get_settings()
    configure_logging(settings.log_level)
    return StoryPipeline(settings)


def _write_output(out_path: Path, story: StoryRecord) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps(story.to_payload(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def _batch_output_path(outdir: Path, url: str, index: int) -> Path:
    parsed = urlparse(url)
    stem = Path(parsed.path.rstrip("/")).name or parsed.hostname or "article"
    safe_stem = "".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in stem)[:60]
    return outdir / f"{index:03d}-{safe_stem}.json"


@app.command("process")
def process_command(
    url: str = typer.Argument(..., help="Article URL to analyze."),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Optional path to write the story JSON. Defaults to stdout.",
    ),
):
    """Run one article URL through fetch -> extract -> analyze -> assemble."""
    pipeline = _build_pipeline()
    try:
        story = pipeline.process(url)
    except StoryError as exc:
        rprint(f"[red]Failed ({exc.status_code}): {exc.message}[/red]")
        raise typer.Exit(code=1)

    if out:
        _write_output(out, story)
        rprint(f"[cyan]Wrote output to {out}[/cyan]")
    else:
        typer.echo(json.dumps(story.to_payload(), ensure_ascii=False, indent=2))


@app.command("batch")
def batch_command(
    urls: List[str] = typer.Argument(..., help="One or more article URLs."),
    outdir: Optional[Path] = typer.Option(
        None,
        "--outdir",
        "-o",
        help="Optional directory to write one JSON file per article.",
    ),
    concurrency: int = typer.Option(
        4,
        "--concurrency",
        "-c",
        help="Number of articles to process in parallel.",
    ),
):
    """
    Run several URLs through the pipeline in parallel.

    Each URL is independent: a failure is reported and the rest continue.
    """
    if concurrency < 1:
        raise typer.BadParameter("concurrency must be >= 1.")

    pipeline = _build_pipeline()
    if outdir:
        outdir.mkdir(parents=True, exist_ok=True)

    outcomes: list[tuple[StoryRecord | None, str | None]] = [(None, None)] * len(urls)
    with ThreadPoolExecutor(max_workers=min(concurrency, len(urls))) as executor:
        future_map = {
            executor.submit(pipeline.process, url): idx for idx, url in enumerate(urls)
        }
        for future in as_completed(future_map):
            idx = future_map[future]
            try:
                outcomes[idx] = (future.result(), None)
            except Exception as exc:
                message = exc.message if isinstance(exc, StoryError) else str(exc)
                outcomes[idx] = (None, message)

    failures = 0
    for idx, (url, (story, error)) in enumerate(zip(urls, outcomes)):
        if error:
            failures += 1
            rprint(f"[red]Failed {url}: {error}[/red]")
            continue
        if outdir:
            out_path = _batch_output_path(outdir, url, idx)
            _write_output(out_path, story)
            rprint(f"[cyan]Wrote {url} to {out_path}[/cyan]")
        else:
            rprint(f"[cyan]--- {url} ---[/cyan]")
            typer.echo(json.dumps(story.to_payload(), ensure_ascii=False, indent=2))

    rprint(
        f"[cyan]Batch complete: {len(urls) - failures} succeeded, {failures} failed.[/cyan]"
    )
    if failures:
        raise typer.Exit(code=1)


@app.command("serve")
def serve_command(
    host: str = typer.Option(os.getenv("STORY_HOST", "0.0.0.0"), help="Bind address."),
    port: int = typer.Option(int(os.getenv("STORY_PORT", "8000")), help="Bind port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
):
    """Start the HTTP API (POST /api/process-article)."""
    from .server import serve

    serve(host=host, port=port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
