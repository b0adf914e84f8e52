from __future__ import annotations

from typing import Protocol, Sequence

import tiktoken

from markdown_pipeline.errors import SegmentationError


class Encoding(Protocol):
    def encode(self, text: str) -> list[int]: ...

    def decode(self, tokens: list[int]) -> str: ...


def get_encoding(name: str = "cl100k_base") -> Encoding:
    try:
        return tiktoken.get_encoding(name)
    except ValueError as exc:
        raise SegmentationError(f"Unknown tokenizer encoding: {name}") from exc


def split_token_ids(ids: Sequence[int], chunk_size: int, overlap: int) -> list[list[int]]:
    """
    Cut a token sequence into windows of at most `chunk_size` tokens.

    Each window starts `chunk_size - overlap` tokens after the previous one;
    the last window always ends at the last token.
    """
    if chunk_size <= 0:
        raise SegmentationError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0 or overlap >= chunk_size:
        raise SegmentationError(f"overlap must be in [0, chunk_size), got {overlap} for chunk_size={chunk_size}")

    step = chunk_size - overlap
    windows: list[list[int]] = []
    start = 0
    while start < len(ids):
        end = min(start + chunk_size, len(ids))
        windows.append(list(ids[start:end]))
        if end == len(ids):
            break
        start += step
    return windows


def segment(
    document: str,
    chunk_size: int = 500,
    overlap: int = 50,
    *,
    encoding: Encoding | None = None,
) -> list[str]:
    """
    Split a document into ordered, overlapping token segments.

    Deterministic for fixed inputs. A blank document yields no window for the
    controller to start from, so it is rejected here.
    """
    if not document.strip():
        raise SegmentationError("Document is empty; nothing to segment.")
    enc = encoding or get_encoding()
    ids = enc.encode(document)
    return [enc.decode(window) for window in split_token_ids(ids, chunk_size, overlap)]
