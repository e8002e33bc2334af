from datetime import datetime

import matplotlib.pyplot as plt

from export import export_pdf_bytes, export_png_bytes, preview_png_bytes
from renderer import render_timeline_figure
from timeline import Timeline
from timeline_models import Resolution


def _timeline(london, scheduler) -> Timeline:
    timeline = Timeline(locale=london, viewport_width_px=900, scheduler=scheduler)
    timeline.render(Resolution.HOUR, datetime(2020, 3, 28, 12), datetime(2020, 3, 30, 11, 59, 59))
    timeline.set_scroll_offset(250)
    scheduler.run_pending()
    return timeline


def test_exports_produce_bytes(london, scheduler) -> None:
    timeline = _timeline(london, scheduler)

    png = export_png_bytes(timeline, title="Smoke Test Timeline", dpi=100)
    pdf = export_pdf_bytes(timeline)
    preview = preview_png_bytes(timeline)

    assert png[:8] == b"\x89PNG\r\n\x1a\n"
    assert preview[:8] == b"\x89PNG\r\n\x1a\n"
    assert pdf[:4] == b"%PDF"


def test_figure_has_no_warnings_when_rendered(london, scheduler) -> None:
    fig, warnings = render_timeline_figure(_timeline(london, scheduler))
    assert warnings["empty"] == []
    plt.close(fig)


def test_empty_timeline_still_draws(london) -> None:
    fig, warnings = render_timeline_figure(Timeline(locale=london))
    assert warnings["empty"]
    plt.close(fig)
