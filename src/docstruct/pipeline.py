"""Pipeline stage infrastructure: gating, timing, and stage-result recording.

Provides the canonical per-page reconstruction flow:

    split → assemble → compose → images → refine → dedup

Every stage produces a :class:`StageResult` recorded on the
:class:`PageResult`.  Gating logic is centralised in :func:`gate` so that
every caller behaves identically.

:func:`reconstruct_page` performs no I/O and holds no state between calls,
so callers may process pages in parallel.
"""

from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generator, Iterable, List, Optional, Sequence

from .compose import compose_page, filter_image_candidates
from .config import ReconstructionConfig
from .dedup import deduplicate_blocks, order_blocks
from .export.markdown import ImageResolver, render_markdown
from .export.transcript import render_transcript
from .geometry import Rect, Size
from .grouping import assemble_lines
from .models import DocumentBlock, SemanticRegion, TextFragment, TextLine
from .refine import refine_paragraphs
from .whitespace import PixelSampler, refine_fragments

logger = logging.getLogger("docstruct.pipeline")

# ── Skip reasons (exhaustive enumeration) ──────────────────────────────


class SkipReason(str, Enum):
    """Why a pipeline stage was skipped."""

    disabled_by_config = "disabled_by_config"
    missing_inputs = "missing_inputs"
    upstream_failed = "upstream_failed"
    not_applicable = "not_applicable"


# ── Stage result ───────────────────────────────────────────────────────


@dataclass
class StageResult:
    """Outcome record for a single pipeline stage."""

    stage: str
    enabled: bool = False
    ran: bool = False
    status: str = "skipped"  # "success" | "skipped" | "failed"
    skip_reason: Optional[str] = None
    duration_ms: int = 0
    counts: Dict[str, Any] = field(default_factory=dict)
    inputs: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize stage result to a JSON-compatible dict."""
        d: Dict[str, Any] = {
            "stage": self.stage,
            "enabled": self.enabled,
            "ran": self.ran,
            "status": self.status,
        }
        if self.skip_reason is not None:
            d["skip_reason"] = self.skip_reason
        d["duration_ms"] = self.duration_ms
        if self.counts:
            d["counts"] = self.counts
        if self.inputs:
            d["inputs"] = self.inputs
        if self.error is not None:
            d["error"] = self.error
        return d


# ── Canonical gating function ──────────────────────────────────────────

# Ordered stage names, the canonical pipeline sequence.
STAGE_ORDER: List[str] = [
    "split",
    "assemble",
    "compose",
    "images",
    "refine",
    "dedup",
]


def gate(
    stage: str,
    cfg: ReconstructionConfig,
    inputs: Dict[str, Any] | None = None,
) -> tuple[bool, Optional[str]]:
    """Decide whether *stage* should run.

    Parameters
    ----------
    stage : str
        One of :data:`STAGE_ORDER`.
    cfg : ReconstructionConfig
        Effective configuration for the run.
    inputs : dict, optional
        Lightweight metadata about the available inputs (e.g.
        ``{"has_sampler": True, "candidates": 3}``).

    Returns
    -------
    (should_run, skip_reason)
        *should_run* is ``True`` when the stage should execute.
        When ``False``, *skip_reason* explains why.
    """
    if inputs is None:
        inputs = {}

    # Stages that always run unconditionally.
    if stage in ("assemble", "compose"):
        return True, None

    if stage == "split":
        if not cfg.enable_whitespace_split:
            return False, SkipReason.disabled_by_config.value
        if not inputs.get("has_sampler"):
            return False, SkipReason.missing_inputs.value
        return True, None

    if stage == "images":
        if not inputs.get("candidates"):
            return False, SkipReason.missing_inputs.value
        return True, None

    if stage in ("refine", "dedup"):
        if not cfg.apply_post_processing:
            return False, SkipReason.disabled_by_config.value
        return True, None

    # Unknown stage: treat as not applicable.
    return False, SkipReason.not_applicable.value


def _stage_enabled(stage: str, cfg: ReconstructionConfig) -> bool:
    if stage == "split":
        return cfg.enable_whitespace_split
    if stage in ("refine", "dedup"):
        return cfg.apply_post_processing
    return stage in STAGE_ORDER


# ── Stage context manager ──────────────────────────────────────────────


@contextmanager
def run_stage(
    stage: str,
    cfg: ReconstructionConfig,
    inputs: Dict[str, Any] | None = None,
) -> Generator[StageResult, None, None]:
    """Context manager that wraps a pipeline stage with gating + timing.

    Usage::

        with run_stage("assemble", cfg) as sr:
            if sr.ran:
                lines = assemble_lines(fragments, cfg)
                sr.counts["lines"] = len(lines)

    The yielded :class:`StageResult` has ``ran=True`` only when
    :func:`gate` approves the stage.  The caller should check ``sr.ran``
    before doing the work.  Timing is handled automatically; an exception
    raised by the body is recorded on the result and re-raised.
    """
    should_run, skip_reason = gate(stage, cfg, inputs)

    sr = StageResult(stage=stage, enabled=_stage_enabled(stage, cfg))
    if inputs:
        sr.inputs = inputs

    if not should_run:
        sr.ran = False
        sr.status = "skipped"
        sr.skip_reason = skip_reason
        yield sr
        return

    sr.ran = True
    t0 = time.perf_counter()
    try:
        yield sr
        if sr.status not in ("success", "failed"):
            sr.status = "success"
    except Exception as exc:
        sr.status = "failed"
        sr.error = {
            "type": type(exc).__name__,
            "message": str(exc),
            "stack": traceback.format_exc(),
        }
        # Re-raise so the outer handler can decide fallback policy.
        raise
    finally:
        elapsed = time.perf_counter() - t0
        sr.duration_ms = int(elapsed * 1000)


# ── Page-level input and result containers ─────────────────────────────


@dataclass
class PageInput:
    """Everything the external recognizers produced for one page."""

    fragments: Sequence[TextFragment]
    page_size: Size
    regions: Sequence[SemanticRegion] = ()
    # Raster size the regions were detected at (defaults to page_size).
    region_size: Optional[Size] = None
    rectangle_candidates: Sequence[Rect] = ()
    pixel_sampler: Optional[PixelSampler] = None
    page: int = 0


@dataclass
class PageResult:
    """Structured result from :func:`reconstruct_page` for a single page."""

    page: int = 0
    page_width: float = 0.0
    page_height: float = 0.0

    stages: Dict[str, StageResult] = field(default_factory=dict)

    fragments: List[TextFragment] = field(default_factory=list)
    lines: List[TextLine] = field(default_factory=list)
    blocks: List[DocumentBlock] = field(default_factory=list)

    def page_size(self) -> Size:
        return Size(self.page_width, self.page_height)

    def transcript(self) -> str:
        return render_transcript(self.blocks)

    def markdown(self, image_resolver: Optional[ImageResolver] = None) -> str:
        return render_markdown(self.blocks, image_resolver)

    def to_summary_dict(self) -> Dict[str, Any]:
        """Return a lightweight summary suitable for JSON serialisation."""
        kinds: Dict[str, int] = {}
        for b in self.blocks:
            kinds[b.kind().value] = kinds.get(b.kind().value, 0) + 1
        return {
            "page": self.page,
            "page_width": self.page_width,
            "page_height": self.page_height,
            "stages": {n: sr.to_dict() for n, sr in self.stages.items()},
            "counts": {
                "fragments": len(self.fragments),
                "lines": len(self.lines),
                "blocks": len(self.blocks),
                "block_kinds": kinds,
            },
        }


# ── Single-page pipeline runner ────────────────────────────────────────


def reconstruct_page(
    page_input: PageInput,
    cfg: ReconstructionConfig | None = None,
) -> PageResult:
    """Run the full reconstruction pipeline on a single page.

    Parameters
    ----------
    page_input : PageInput
        Fragments, page size and the optional hints for the page.
    cfg : ReconstructionConfig, optional
        Pipeline configuration.  Defaults to ``ReconstructionConfig()``.

    Returns
    -------
    PageResult
        Lines, ordered blocks and per-stage records.
    """
    if cfg is None:
        cfg = ReconstructionConfig()

    size = page_input.page_size
    pr = PageResult(page=page_input.page, page_width=size.width, page_height=size.height)
    fragments = list(page_input.fragments)
    candidates = list(page_input.rectangle_candidates)

    # Stage 1: whitespace split
    split_inputs = {"has_sampler": page_input.pixel_sampler is not None}
    with run_stage("split", cfg, inputs=split_inputs) as sr:
        if sr.ran:
            refined = refine_fragments(fragments, page_input.pixel_sampler, cfg)
            sr.counts = {"fragments_in": len(fragments), "fragments_out": len(refined)}
            fragments = refined
    pr.stages["split"] = sr
    pr.fragments = fragments

    # Stage 2: line assembly
    with run_stage("assemble", cfg) as sr:
        lines = assemble_lines(fragments, cfg)
        sr.counts = {"lines": len(lines)}
    pr.stages["assemble"] = sr
    pr.lines = lines

    # Stage 3: region composition + standalone paragraphs
    with run_stage("compose", cfg, inputs={"regions": len(page_input.regions)}) as sr:
        composition = compose_page(
            lines, size, page_input.regions, page_input.region_size, cfg
        )
        blocks = composition.blocks()
        sr.counts = {
            "blocks": len(blocks),
            "structured": len(composition.structured),
            "standalone": len(composition.standalone),
        }
    pr.stages["compose"] = sr

    # Stage 4: image candidates, checked against region blocks only
    with run_stage("images", cfg, inputs={"candidates": len(candidates)}) as sr:
        if sr.ran:
            images = filter_image_candidates(
                candidates, composition.structured, size, cfg
            )
            sr.counts = {"accepted": len(images), "rejected": len(candidates) - len(images)}
            blocks.extend(images)
    pr.stages["images"] = sr

    # Stage 5: paragraph split / merge
    with run_stage("refine", cfg) as sr:
        if sr.ran:
            before = len(blocks)
            blocks = refine_paragraphs(blocks, size, cfg)
            sr.counts = {"blocks_in": before, "blocks_out": len(blocks)}
    pr.stages["refine"] = sr

    # Stage 6: deduplication
    with run_stage("dedup", cfg) as sr:
        if sr.ran:
            before = len(blocks)
            blocks = deduplicate_blocks(blocks, cfg)
            sr.counts = {"dropped": before - len(blocks)}
    pr.stages["dedup"] = sr

    pr.blocks = order_blocks(blocks, size, cfg)

    logger.info(
        "reconstruct_page page %d: %d fragments, %d lines, %d blocks",
        pr.page,
        len(pr.fragments),
        len(pr.lines),
        len(pr.blocks),
    )
    return pr


# ── Document-level result ──────────────────────────────────────────────


@dataclass
class DocumentResult:
    """Aggregated result for a multi-page run."""

    pages: List[PageResult] = field(default_factory=list)
    config: Optional[ReconstructionConfig] = None

    def failed_pages(self) -> List[int]:
        return [pr.page for pr in self.pages if "error" in pr.stages]

    def transcript(self) -> str:
        """Page transcripts separated by a ``---`` rule."""
        return "\n\n---\n\n".join(pr.transcript() for pr in self.pages)

    def to_summary_dict(self) -> Dict[str, Any]:
        """Serialize document result to a summary dict."""
        return {
            "pages_processed": len(self.pages),
            "failed_pages": self.failed_pages(),
            "total_blocks": sum(len(pr.blocks) for pr in self.pages),
            "pages": [pr.to_summary_dict() for pr in self.pages],
        }


# ── Document-level runner ──────────────────────────────────────────────


def reconstruct_document(
    pages: Iterable[PageInput],
    cfg: ReconstructionConfig | None = None,
) -> DocumentResult:
    """Reconstruct every page independently, in input order.

    A page that raises is recorded as a failed :class:`PageResult` and
    the remaining pages are still processed.
    """
    if cfg is None:
        cfg = ReconstructionConfig()

    dr = DocumentResult(config=cfg)
    for page_input in pages:
        try:
            dr.pages.append(reconstruct_page(page_input, cfg))
        except Exception as exc:
            logger.error("reconstruct_document page %d failed: %s", page_input.page, exc)
            failed = PageResult(
                page=page_input.page,
                page_width=page_input.page_size.width,
                page_height=page_input.page_size.height,
            )
            failed.stages["error"] = StageResult(
                stage="pipeline",
                status="failed",
                error={"type": type(exc).__name__, "message": str(exc)},
            )
            dr.pages.append(failed)

    logger.info(
        "reconstruct_document: %d pages, %d failed",
        len(dr.pages),
        len(dr.failed_pages()),
    )
    return dr
