from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Sequence

from markdown_pipeline.errors import OutputError, SegmentationError
from markdown_pipeline.llm.client import OracleClient
from markdown_pipeline.segment.tokens import Encoding, segment
from markdown_pipeline.window.controller import WindowController


def convert_document(
    text: str,
    *,
    oracle: OracleClient,
    chunk_size: int = 500,
    overlap: int = 50,
    max_iterations: int = 1000,
    encoding: Encoding | None = None,
    cancel: threading.Event | None = None,
    verbose: bool = True,
) -> list[str]:
    """
    Segment a document once and run the window loop over it.
    Returns the stored markdown passages in iteration order.
    """
    segments = segment(text, chunk_size, overlap, encoding=encoding)
    if verbose:
        print(f"[convert] segments={len(segments)} chunk_size={chunk_size} overlap={overlap}", file=sys.stderr)
    controller = WindowController(oracle, max_iterations=max_iterations, verbose=verbose)
    return controller.run(segments, cancel=cancel)


def read_document(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SegmentationError(f"Unable to read document {path}: {exc}") from exc


def convert_file(path: Path, **kwargs) -> list[str]:
    return convert_document(read_document(path), **kwargs)


def write_passages(path: Path, passages: Sequence[str]) -> None:
    try:
        path.write_text("\n\n".join(passages) + "\n", encoding="utf-8")
    except OSError as exc:
        raise OutputError(f"Unable to write passages to {path}: {exc}") from exc
