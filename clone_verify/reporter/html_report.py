"""HTML report generator: one self-contained page with a card per case."""

from __future__ import annotations

import base64
import html
import logging
from pathlib import Path

from clone_verify.models.result import CaseOutcome, SuiteReport

from .regression_detector import Regression

logger = logging.getLogger(__name__)

_STATUS_COLORS = {"pass": "#16a34a", "fail": "#dc2626", "error": "#ea580c"}

_STYLE = """
  :root { --ok: #16a34a; --bad: #dc2626; --err: #ea580c; --ink: #0f172a; --dim: #6b7280; --line: #d1d5db; --paper: #ffffff; --ground: #f3f4f6; --focus: #4f46e5; }
  body { margin: 0; padding: 2rem; font: 14px/1.5 system-ui, sans-serif; color: var(--ink); background: var(--ground); }
  main { max-width: 1500px; margin: 0 auto; }
  header h1 { margin: 0 0 0.25rem; font-size: 1.6rem; }
  header p { margin: 0 0 1.25rem; color: var(--dim); font-size: 0.85rem; }
  .tiles { display: flex; flex-wrap: wrap; gap: 0.75rem; margin-bottom: 1.25rem; }
  .tile { flex: 1 1 120px; padding: 0.9rem; background: var(--paper); border: 1px solid var(--line); border-radius: 6px; text-align: center; }
  .tile b { display: block; font-size: 1.6rem; }
  .tile span { color: var(--dim); font-size: 0.75rem; text-transform: uppercase; }
  .tile.pass b { color: var(--ok); } .tile.fail b { color: var(--bad); } .tile.error b { color: var(--err); } .tile.accuracy b { color: var(--focus); }
  .notice { margin-bottom: 1rem; padding: 0.6rem 0.9rem; border-radius: 6px; background: #fee2e2; color: #7f1d1d; }
  .regressions { margin-bottom: 1.25rem; padding: 0.9rem 1.1rem; border-left: 4px solid var(--bad); background: #fff1f2; }
  .regressions h2 { margin: 0 0 0.4rem; font-size: 1rem; color: var(--bad); }
  .toolbar { display: flex; gap: 0.4rem; margin-bottom: 0.9rem; }
  .toolbar button { padding: 0.3rem 0.8rem; border: 1px solid var(--line); border-radius: 4px; background: var(--paper); cursor: pointer; }
  .toolbar button.on { background: var(--focus); border-color: var(--focus); color: #fff; }
  .case { margin-bottom: 0.5rem; background: var(--paper); border: 1px solid var(--line); border-radius: 6px; }
  .case > summary { display: flex; align-items: center; gap: 0.5rem; padding: 0.6rem 0.9rem; cursor: pointer; list-style: none; }
  .case > summary .numbers { margin-left: auto; color: var(--dim); font-size: 0.8rem; }
  .case .detail { padding: 0 0.9rem 0.9rem; }
  .badge { padding: 0.1rem 0.5rem; border-radius: 4px; font-size: 0.7rem; font-weight: 600; text-transform: uppercase; }
  .badge.pass { background: #dcfce7; color: #14532d; } .badge.fail { background: #fee2e2; color: #7f1d1d; }
  .badge.error { background: #ffedd5; color: #7c2d12; } .badge.viewport { background: #e0e7ff; color: #312e81; }
  table.metrics { border-collapse: collapse; margin-bottom: 0.8rem; }
  table.metrics th { padding: 0.15rem 1rem 0.15rem 0; text-align: left; font-weight: 500; color: var(--dim); }
  .frames { display: grid; grid-template-columns: repeat(3, 1fr); gap: 0.5rem; }
  .frames figure { margin: 0; text-align: center; }
  .frames img { width: 100%; border: 1px solid var(--line); cursor: zoom-in; }
  .frames img.full { position: fixed; inset: 3%; width: 94%; height: 94%; object-fit: contain; background: rgba(15,23,42,0.9); cursor: zoom-out; z-index: 10; }
  .frames figure.missing { padding: 2rem 0; border: 1px dashed var(--line); }
  .frames figcaption { color: var(--dim); font-size: 0.75rem; }
"""

_SCRIPT = """
function showStatus(button, status) {
  document.querySelectorAll('.toolbar button[data-filter]').forEach(b => b.classList.toggle('on', b === button));
  document.querySelectorAll('details.case').forEach(c => {
    c.hidden = status !== 'all' && c.dataset.status !== status;
  });
}
function openAll(open) {
  document.querySelectorAll('details.case').forEach(c => { c.open = open; });
}
"""


def _embed_image(path: str | None) -> str:
    """Data URI for a PNG artifact, or empty string when it cannot be read."""
    if not path:
        return ""
    p = Path(path)
    try:
        if not p.is_file() or p.stat().st_size == 0:
            return ""
        encoded = base64.b64encode(p.read_bytes()).decode()
    except OSError as e:
        logger.debug("Could not embed %s: %s", path, e)
        return ""
    return f"data:image/png;base64,{encoded}"


def _figure(path: str | None, label: str) -> str:
    src = _embed_image(path)
    if not src:
        return f'<figure class="missing"><figcaption>{label} unavailable</figcaption></figure>'
    return (f'<figure><img src="{src}" alt="{label}" loading="lazy" '
            f'onclick="this.classList.toggle(\'full\')"/><figcaption>{label}</figcaption></figure>')


def _metrics_table(o: CaseOutcome) -> str:
    r = o.result
    size_note = "" if r.dimensions_match else ' <span class="badge fail">size mismatch</span>'
    rows = [
        ("Differing pixels", f"{r.pixel_difference_count:,} / {r.total_compared_pixels:,}"),
        ("Diff percentage", f"{r.diff_percentage:.2f}% (max {r.max_diff_percent:g}%)"),
        ("Height delta", f"{r.height_delta_percentage:.2f}% (max {r.max_height_delta_percent:g}%)"),
        ("Reference", f"{r.reference_dimensions}"),
        ("Candidate", f"{r.candidate_dimensions}{size_note}"),
    ]
    body = "".join(f"<tr><th>{name}</th><td>{value}</td></tr>" for name, value in rows)
    return f'<table class="metrics">{body}</table>'


def _build_case_card(o: CaseOutcome) -> str:
    """Collapsible card for one case: verdict, numbers, and the three images."""
    if o.is_error:
        numbers = html.escape(o.error.error_type)
        detail = f'<div class="notice"><strong>Error:</strong> {html.escape(o.error.message)}</div>'
    else:
        numbers = (f"{o.result.diff_percentage:.2f}% diff &middot; height &Delta; "
                   f"{o.result.height_delta_percentage:.2f}% &middot; {o.duration_seconds:.1f}s")
        detail = _metrics_table(o)

    a = o.artifacts
    if a.reference_path or a.candidate_path or a.diff_path:
        figures = _figure(a.reference_path, "Reference") + _figure(a.candidate_path, "Candidate")
        if not o.is_error:
            figures += _figure(a.diff_path, "Differences")
        detail += f'<div class="frames">{figures}</div>'

    color = _STATUS_COLORS[o.status]
    return (
        f'<details class="case" id="case-{html.escape(o.case_id)}" data-status="{o.status}" '
        f'style="border-left: 4px solid {color};">'
        f'<summary><span class="badge {o.status}">{o.status}</span>'
        f'<strong>{html.escape(o.page_name)}</strong>'
        f'<span class="badge viewport">{html.escape(o.viewport_name)}</span>'
        f'<span class="numbers">{numbers}</span></summary>'
        f'<div class="detail">{detail}</div></details>'
    )


def _regressions_box(regressions: list[Regression]) -> str:
    if not regressions:
        return ""
    items = "".join(
        f"<li><strong>{html.escape(r.page_name)}</strong> ({html.escape(r.viewport_name)}): "
        f"{r.previous_status} &rarr; {r.current_status}"
        f"{': ' + html.escape(r.reason) if r.reason else ''}</li>"
        for r in regressions
    )
    return (f'<section class="regressions"><h2>&#9888; Regressions ({len(regressions)})</h2>'
            f'<ul>{items}</ul></section>')


def generate_html_report(
    report: SuiteReport,
    regressions: list[Regression],
    output_path: Path,
) -> None:
    """Write the HTML report. Images are embedded so the file can be moved freely."""
    tiles = [
        ("", report.total_tests, "Total Tests"),
        ("pass", report.passed, "Passed"),
        ("fail", report.failed, "Failed"),
        ("error", report.errored, "Errors"),
        ("accuracy", f"{report.accuracy_percentage:.1f}%", "Accuracy"),
    ]
    tiles_html = "".join(
        f'<div class="tile {cls}"><b>{value}</b><span>{label}</span></div>' for cls, value, label in tiles
    )
    notice = '<div class="notice"><strong>No tests ran.</strong></div>' if report.no_tests_ran else ""
    run_id = html.escape(report.run_id)
    cards = "\n".join(_build_case_card(o) for o in report.outcomes)

    page = f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Visual Verification Report: {run_id}</title>
<style>{_STYLE}</style>
</head>
<body>
<main>
  <header>
    <h1>Visual Verification Report</h1>
    <p>Run {run_id} &middot; {html.escape(report.started_at)} &middot; {report.duration_seconds}s &middot;
       tolerance {report.tolerance:g} &middot; max diff {report.max_diff_percent:g}% &middot;
       max height &Delta; {report.max_height_delta_percent:g}%</p>
  </header>
  <div class="tiles">{tiles_html}</div>
  {notice}
  {_regressions_box(regressions)}
  <div class="toolbar">
    <button class="on" data-filter onclick="showStatus(this, 'all')">All</button>
    <button data-filter onclick="showStatus(this, 'fail')">Failed</button>
    <button data-filter onclick="showStatus(this, 'error')">Errors</button>
    <button data-filter onclick="showStatus(this, 'pass')">Passed</button>
    <button onclick="openAll(true)">Expand all</button>
    <button onclick="openAll(false)">Collapse all</button>
  </div>
  {cards}
</main>
<script>{_SCRIPT}</script>
</body>
</html>"""
    output_path.write_text(page, encoding="utf-8")
