from __future__ import annotations

from io import BytesIO
from typing import Optional

import matplotlib.pyplot as plt

from renderer import render_timeline_figure
from timeline import Timeline


def export_pdf_bytes(timeline: Timeline, *, title: Optional[str] = None) -> bytes:
    fig, _ = render_timeline_figure(timeline, preview=False, title=title)
    bio = BytesIO()
    fig.savefig(bio, format="pdf", facecolor="white")
    # Close to avoid figure build-up in long-running hosts
    plt.close(fig)
    return bio.getvalue()


def export_png_bytes(timeline: Timeline, *, title: Optional[str] = None, dpi: int = 300) -> bytes:
    fig, _ = render_timeline_figure(timeline, preview=False, dpi=dpi, title=title)
    bio = BytesIO()
    fig.savefig(bio, format="png", dpi=dpi, facecolor="white")
    plt.close(fig)
    return bio.getvalue()


def preview_png_bytes(timeline: Timeline, *, dpi: int = 100) -> bytes:
    fig, _ = render_timeline_figure(timeline, preview=True, dpi=dpi)
    bio = BytesIO()
    fig.savefig(bio, format="png", dpi=dpi, facecolor="white")
    plt.close(fig)
    return bio.getvalue()
