"""Token segmentation of source documents."""

from markdown_pipeline.segment.tokens import segment, split_token_ids

__all__ = ["segment", "split_token_ids"]
