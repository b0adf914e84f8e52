"""
Command-line interface for the markdown pipeline.

Usage:
    text-chunking-gpt convert <path>     # Convert a text document to markdown passages
    text-chunking-gpt segment <path>     # Show how a document is segmented (no LLM calls)
"""

from __future__ import annotations

import threading
from contextlib import nullcontext
from pathlib import Path
from typing import Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from markdown_pipeline.convert import convert_file, read_document, write_passages
from markdown_pipeline.errors import ConversionError
from markdown_pipeline.llm.azure_openai import AzureOpenAIClient
from markdown_pipeline.llm.client import OracleClient
from markdown_pipeline.segment.tokens import get_encoding, segment
from markdown_pipeline.settings import Settings, get_settings

app = typer.Typer(
    name="text-chunking-gpt",
    help="Convert plain-text documents into markdown passages with an LLM-driven sliding window.",
)
console = Console(stderr=True)
out = Console()


def _report(exc: ConversionError) -> None:
    console.print(f"[red]✗ {exc.stage.lower()} failed:[/red] {escape(exc.to_log_message())}", highlight=False)


def _build_oracle(settings: Settings) -> OracleClient:
    api_key, endpoint = settings.require_credentials()
    return AzureOpenAIClient(
        api_key=api_key,
        endpoint=endpoint,
        model=settings.model,
        deployment=settings.deployment,
        api_version=settings.azure_openai_api_version,
        timeout_s=settings.timeout_s,
    )


T = TypeVar("T")


def _run_cancellable(work: Callable[[threading.Event], T]) -> T:
    """
    Run `work` on a worker thread so Ctrl-C can set its cancellation event.
    The worker aborts at its next oracle-call boundary; errors are re-raised here.
    """
    cancel = threading.Event()
    outcome: dict[str, object] = {}

    def target() -> None:
        try:
            outcome["value"] = work(cancel)
        except BaseException as exc:  # re-raised on the calling thread
            outcome["error"] = exc

    worker = threading.Thread(target=target, name="convert", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        cancel.set()
        raise
    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome["value"]  # type: ignore[return-value]


def _resolve_settings(**overrides) -> Settings:
    update = {key: value for key, value in overrides.items() if value is not None}
    return get_settings().model_copy(update=update)


@app.command()
def convert(
    path: Path = typer.Argument(..., help="Plain-text document to convert"),
    azure_openai_key: Optional[str] = typer.Option(
        None, "--azure-openai-key", envvar="AZURE_OPENAI_KEY", help="The Azure OpenAI key"
    ),
    azure_openai_endpoint: Optional[str] = typer.Option(
        None, "--azure-openai-endpoint", envvar="AZURE_OPENAI_ENDPOINT", help="The Azure OpenAI endpoint"
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model / deployment name"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Segment size in tokens"),
    chunk_overlap: Optional[int] = typer.Option(None, "--chunk-overlap", help="Token overlap between segments"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Also write the passages to this markdown file"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress per-iteration progress"),
):
    """
    Convert a document into an ordered sequence of markdown passages.

    Each stored passage is printed to stdout; progress goes to stderr.
    """
    settings = _resolve_settings(
        azure_openai_key=azure_openai_key,
        azure_openai_endpoint=azure_openai_endpoint,
        model=model,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
    )

    try:
        oracle = _build_oracle(settings)
        encoding = get_encoding(settings.encoding_name)
        if not quiet:
            console.print(f"[cyan]Converting[/cyan] {escape(str(path))} with {settings.model}")
        with oracle if isinstance(oracle, AzureOpenAIClient) else nullcontext(oracle):
            passages = _run_cancellable(
                lambda cancel: convert_file(
                    path,
                    oracle=oracle,
                    chunk_size=settings.chunk_size,
                    overlap=settings.chunk_overlap,
                    max_iterations=settings.max_iterations,
                    encoding=encoding,
                    cancel=cancel,
                    verbose=not quiet,
                )
            )
    except ConversionError as exc:
        _report(exc)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Conversion cancelled[/yellow]")
        raise typer.Exit(130)

    for i, passage in enumerate(passages):
        out.print(f"Markdown chunk #{i}:\n------\n\n{passage}\n\n------", markup=False, highlight=False, soft_wrap=True)

    if output is not None:
        try:
            write_passages(output, passages)
        except ConversionError as exc:
            _report(exc)
            raise typer.Exit(1)
        console.print(f"[green]✓ Wrote {len(passages)} passages to {output}[/green]")
    elif not quiet:
        console.print(f"[green]✓ {len(passages)} passages[/green]")


@app.command("segment")
def segment_cmd(
    path: Path = typer.Argument(..., help="Plain-text document to segment"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Segment size in tokens"),
    chunk_overlap: Optional[int] = typer.Option(None, "--chunk-overlap", help="Token overlap between segments"),
    preview: int = typer.Option(60, "--preview", help="Characters of each segment to show"),
):
    """
    Show the segments a document would be split into, without calling the LLM.
    """
    settings = _resolve_settings(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    try:
        segments = segment(
            read_document(path),
            settings.chunk_size,
            settings.chunk_overlap,
            encoding=get_encoding(settings.encoding_name),
        )
    except ConversionError as exc:
        _report(exc)
        raise typer.Exit(1)

    table = Table(title=f"{len(segments)} segments, max_index={len(segments) - 1}")
    table.add_column("Index", justify="right")
    table.add_column("Chars", justify="right")
    table.add_column("Preview")
    for i, text in enumerate(segments):
        snippet = " ".join(text.split())[:preview]
        table.add_row(str(i), str(len(text)), snippet)
    out.print(table)


if __name__ == "__main__":
    app()
