"""Geometry-first document structure reconstruction.

Rebuilds paragraphs, lists, tables and images in reading order from
positioned text fragments plus optional region hints.  Frequently-used
symbols are re-exported here for convenience; for the individual passes
import directly from the relevant submodule, e.g.::

    from docstruct.refine import merge_paragraphs
    from docstruct.whitespace import ImagePixelSampler
"""

# ── Core models & config ──────────────────────────────────────────────

from .compose import Composition, compose_blocks, compose_page, filter_image_candidates
from .config import ConfigValidationError, ReconstructionConfig
from .dedup import comparable_text, deduplicate_blocks, order_blocks, post_process_blocks
from .export import (
    ImagePathResolver,
    deserialize_page,
    render_markdown,
    render_transcript,
    serialize_page,
)
from .geometry import (
    NormalizedRect,
    Rect,
    Size,
    compare_reading_order,
    is_in_reading_order,
    sort_in_reading_order,
)
from .grouping import assemble_lines, lines_to_string
from .models import (
    BlockKind,
    BlockLine,
    DocumentBlock,
    ImageContent,
    ImageRegion,
    ListBlock,
    ListItem,
    ListItemRegion,
    ListRegion,
    MarkerKind,
    Paragraph,
    ParagraphRegion,
    Table,
    TableCell,
    TableCellRegion,
    TableRegion,
    TextFragment,
    TextLine,
)
from .pipeline import (
    DocumentResult,
    PageInput,
    PageResult,
    StageResult,
    reconstruct_document,
    reconstruct_page,
)
from .refine import merge_paragraphs, refine_paragraphs, split_paragraphs
from .whitespace import ImagePixelSampler, PixelSampler, refine_fragments

__all__ = [
    # Models & config
    "ReconstructionConfig",
    "ConfigValidationError",
    "Rect",
    "NormalizedRect",
    "Size",
    "TextFragment",
    "TextLine",
    "BlockKind",
    "BlockLine",
    "DocumentBlock",
    "Paragraph",
    "ListBlock",
    "ListItem",
    "MarkerKind",
    "Table",
    "TableCell",
    "ImageContent",
    "ParagraphRegion",
    "ListRegion",
    "ListItemRegion",
    "TableRegion",
    "TableCellRegion",
    "ImageRegion",
    # Geometry
    "compare_reading_order",
    "is_in_reading_order",
    "sort_in_reading_order",
    # Passes
    "assemble_lines",
    "lines_to_string",
    "refine_fragments",
    "PixelSampler",
    "ImagePixelSampler",
    "Composition",
    "compose_page",
    "compose_blocks",
    "filter_image_candidates",
    "split_paragraphs",
    "merge_paragraphs",
    "refine_paragraphs",
    "comparable_text",
    "deduplicate_blocks",
    "order_blocks",
    "post_process_blocks",
    # Pipeline
    "PageInput",
    "PageResult",
    "DocumentResult",
    "StageResult",
    "reconstruct_page",
    "reconstruct_document",
    # Export
    "render_transcript",
    "render_markdown",
    "ImagePathResolver",
    "serialize_page",
    "deserialize_page",
]
