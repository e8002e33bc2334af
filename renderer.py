from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import matplotlib
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from timeline import Timeline
from tiler import DAY_ROW, MONTH_ROW, YEAR_ROW
from virtualization import STYLE_EVEN, STYLE_WEEKEND

ROW_ORDER = (YEAR_ROW, MONTH_ROW, DAY_ROW)

ALT_A = "#FFFFFF"
ALT_B = "#F7F7F7"
WEEKEND_FILL = "#EEF2F7"
BORDER = "#DADADA"
TEXT = "#333333"

# Pixels per inch when mapping the viewport onto a figure.
PX_PER_INCH = 100.0


def _font_family_available(family: str) -> bool:
    family = (family or "").strip()
    if not family:
        return False
    fam_lower = family.lower()
    from matplotlib import font_manager as fm
    return any(f.name.lower() == fam_lower for f in fm.fontManager.ttflist)


def resolve_font_family(preferred: str) -> str:
    """preferred if matplotlib has it, else Arial, else DejaVu Sans."""
    preferred = (preferred or "").strip()
    if preferred and _font_family_available(preferred):
        return preferred
    if _font_family_available("Arial"):
        return "Arial"
    return "DejaVu Sans"


def _draw_block(ax, x: float, y: float, width: float, height: float, label: str, *, face: str, fontsize: int) -> None:
    ax.add_patch(
        Rectangle(
            (x, y),
            width,
            height,
            facecolor=face,
            edgecolor=BORDER,
            linewidth=0.8,
            zorder=2,
        )
    )
    ax.text(
        x + width / 2.0,
        y + height * 0.52,
        label,
        ha="center",
        va="center",
        fontsize=fontsize,
        color=TEXT,
        clip_on=True,
        zorder=3,
    )


def _draw_aggregation_rows(
    ax,
    timeline: Timeline,
    *,
    x0: float,
    x1: float,
    row_h: float,
    preview: bool,
) -> int:
    """Draw year/month/day rows top-down. Returns the number of rows drawn."""
    layout = timeline.layout
    fontsize = 8 if preview else 9
    drawn = 0
    for name in ROW_ORDER:
        row = timeline.tiling.rows.get(name)
        if row is None:
            continue
        y = drawn * row_h
        cursor = 0.0
        for i, block in enumerate(row):
            width = layout.width_px(block.length)
            if cursor + width >= x0 and cursor <= x1:
                _draw_block(ax, cursor, y, width, row_h, block.caption, face=ALT_A if i % 2 == 0 else ALT_B, fontsize=fontsize)
            cursor += width
        drawn += 1
    return drawn


def _draw_resolution_row(ax, timeline: Timeline, *, y: float, row_h: float, preview: bool) -> int:
    """Draw the pool slots from the row translation onwards. Returns the number of slots drawn."""
    fontsize = 7 if preview else 8
    cursor = timeline.renderer.translation_px
    drawn = 0
    for slot in timeline.slots:
        if slot.is_blank:
            continue
        if STYLE_WEEKEND in slot.classes:
            face = WEEKEND_FILL
        elif STYLE_EVEN in slot.classes:
            face = ALT_B
        else:
            face = ALT_A
        _draw_block(ax, cursor, y, slot.width_px, row_h, slot.text, face=face, fontsize=fontsize)
        cursor += slot.width_px
        drawn += 1
    return drawn


def render_timeline_figure(
    timeline: Timeline,
    *,
    preview: bool = False,
    dpi: int = 100,
    font_family: str = "Arial",
    title: Optional[str] = None,
) -> Tuple[plt.Figure, Dict[str, List[str]]]:
    """
    Draw what the timeline currently shows: the aggregation rows and the
    resolution row, clipped to the viewport at the current scroll offset.

    Returns (fig, warnings). warnings: dict categories -> messages
    """
    matplotlib.rcParams["font.family"] = resolve_font_family(font_family)
    warnings: Dict[str, List[str]] = {"empty": []}

    state = timeline.render_state
    viewport = state.viewport_width_px or state.rendered_width_px or 800.0
    x0 = state.scroll_offset_px
    x1 = x0 + viewport

    row_h = 1.0
    n_rows = 1
    if timeline.tiling is not None:
        n_rows += sum(1 for name in ROW_ORDER if name in timeline.tiling.rows)

    fig_w = max(viewport / PX_PER_INCH, 4.0)
    fig_h = 0.35 * n_rows + (0.5 if title else 0.2)
    fig = plt.figure(figsize=(fig_w, fig_h), dpi=dpi)
    ax = fig.add_axes((0.0, 0.0, 1.0, 1.0 if not title else 1.0 - 0.5 / fig_h))
    ax.axis("off")
    ax.set_xlim(x0, x1)
    ax.set_ylim(n_rows * row_h, 0.0)
    if title:
        fig.suptitle(title, fontsize=11 if not preview else 10, fontweight="bold", x=0.01, ha="left")

    if timeline.tiling is None or timeline.tiling.is_empty or timeline.renderer is None:
        warnings["empty"].append("Timeline has nothing to draw.")
        return fig, warnings

    rows_drawn = _draw_aggregation_rows(ax, timeline, x0=x0, x1=x1, row_h=row_h, preview=preview)
    _draw_resolution_row(ax, timeline, y=rows_drawn * row_h, row_h=row_h, preview=preview)
    ax.hlines(0.0, x0, x1, colors=BORDER, linewidth=0.9, zorder=4)
    ax.hlines(n_rows * row_h, x0, x1, colors=BORDER, linewidth=0.9, zorder=4)
    return fig, warnings
