"""Threshold-annotated SVG line charts for hourly forecast rows.

Each chart is a self-contained inline SVG string: adverse-zone shading, a
threshold reference line, gridlines with labels, an event marker, and the
data line with a filled area and per-point dots. Rendering is a pure function
of its inputs; identical inputs give byte-identical output.
"""
from __future__ import annotations

import datetime as dt
import html
import math
from typing import List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from eventwx.domain import (
    AdverseThresholds,
    ChartMode,
    ChartSpec,
    EventConfig,
    GridpointForecast,
    HourlyPoint,
    ThresholdDirection,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="chart_renderer")

MARGIN_LEFT = 38
MARGIN_RIGHT = 8
MARGIN_TOP = 14
MARGIN_BOTTOM = 28

ADVERSE_FILL = "rgba(255,193,7,0.12)"
ADVERSE_STROKE = "rgba(255,193,7,0.35)"
THRESHOLD_STROKE = "rgba(255,193,7,0.5)"
THRESHOLD_TEXT = "rgba(255,193,7,0.7)"
GRID_STROKE = "rgba(40,53,147,0.3)"
INDEX_STROKE = "rgba(200,200,200,0.12)"
TICK_STROKE = "rgba(40,53,147,0.2)"
AXIS_TEXT = "#9fa8da"
DAY_TEXT = "#7986cb"
EVENT_COLOR = "#f44336"
ALERT_DOT = "#ffc107"

NO_DATA_HTML = (
    '<div class="chart-placeholder" style="text-align:center;color:#9fa8da;'
    'padding:1rem;font-size:0.8rem;">No data</div>'
)

# (field, row header, color, mode, thresholds attribute)
TIMELINE_ROWS = [
    ("temperature", "Temperature (F)", "#2196f3", ChartMode.NATURAL, "max_temp"),
    ("probabilityOfPrecipitation", "Rain Chance (%)", "#4caf50", ChartMode.PERCENTAGE, "min_rain_chance"),
    ("skyCover", "Cloud Cover (%)", "#9e9e9e", ChartMode.PERCENTAGE, "min_sky_cover"),
]

# Charts available individually; fields without a threshold attribute get no shading.
FIELD_CHARTS = {
    "temperature": ("#2196f3", ChartMode.NATURAL, "max_temp"),
    "dewpoint": ("#00bcd4", ChartMode.NATURAL, None),
    "relativeHumidity": ("#06b6d4", ChartMode.PERCENTAGE, None),
    "windSpeed": ("#7c4dff", ChartMode.NATURAL, None),
    "windGust": ("#7dd3fc", ChartMode.NATURAL, None),
    "probabilityOfPrecipitation": ("#4caf50", ChartMode.PERCENTAGE, "min_rain_chance"),
    "skyCover": ("#9e9e9e", ChartMode.PERCENTAGE, "min_sky_cover"),
    "quantitativePrecipitation": ("#118ab2", ChartMode.NATURAL, None),
}


# ── SVG helpers ─────────────────────────────────────────────


def _n(value: float) -> str:
    """Format a coordinate with fixed precision."""
    return f"{value:.1f}"


def _fmt_value(value: float) -> str:
    """Format a data value for a label: integers without a decimal point."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def _svg_line(x1, y1, x2, y2, stroke, stroke_width, extra="") -> str:
    parts = [f'<line x1="{_n(x1)}" y1="{_n(y1)}" x2="{_n(x2)}" y2="{_n(y2)}"'
             f' stroke="{stroke}" stroke-width="{stroke_width}"']
    if extra:
        parts.append(f" {extra}")
    parts.append("/>")
    return "".join(parts)


def _svg_text(x, y, text, *, fill, font_size, anchor="start", weight="") -> str:
    parts = [f'<text x="{_n(x)}" y="{_n(y)}"']
    if anchor != "start":
        parts.append(f' text-anchor="{anchor}"')
    parts.append(f' fill="{fill}" font-size="{font_size}"')
    if weight:
        parts.append(f' font-weight="{weight}"')
    parts.append(f">{html.escape(str(text))}</text>")
    return "".join(parts)


# ── Scaling ─────────────────────────────────────────────────


def compute_y_bounds(values: Sequence[Optional[float]], mode: ChartMode) -> Tuple[float, float]:
    """
    Vertical axis bounds for a series.

    Percentage mode is fixed at [0, 100]. Natural mode pads the data range by
    2 units, snaps outward to multiples of 5 and guarantees a span of at
    least 10.
    """
    if mode == ChartMode.PERCENTAGE:
        return 0.0, 100.0
    valid = [v for v in values if v is not None]
    if not valid:
        raise ValueError("cannot scale a series with no values")
    y_min = math.floor((min(valid) - 2) / 5) * 5
    y_max = math.ceil((max(valid) + 2) / 5) * 5
    if y_max - y_min < 10:
        mid = (y_max + y_min) / 2
        y_min = math.floor((mid - 5) / 5) * 5
        y_max = math.ceil((mid + 5) / 5) * 5
    return float(y_min), float(y_max)


def is_adverse(value: Optional[float], threshold: Optional[float],
               direction: ThresholdDirection = ThresholdDirection.ABOVE) -> bool:
    """True when the value is strictly beyond the threshold in the given direction."""
    if value is None or threshold is None:
        return False
    if direction == ThresholdDirection.BELOW:
        return value < threshold
    return value > threshold


def find_adverse_runs(values: Sequence[Optional[float]], threshold: Optional[float],
                      direction: ThresholdDirection = ThresholdDirection.ABOVE) -> List[Tuple[int, int]]:
    """Return (start, end) index pairs, inclusive, of maximal adverse runs."""
    runs: List[Tuple[int, int]] = []
    if threshold is None:
        return runs
    start: Optional[int] = None
    for i, value in enumerate(values):
        if is_adverse(value, threshold, direction):
            if start is None:
                start = i
        elif start is not None:
            runs.append((start, i - 1))
            start = None
    if start is not None:
        runs.append((start, len(values) - 1))
    return runs


def event_marker_index(hours: Sequence[HourlyPoint], event_time: dt.datetime) -> Optional[float]:
    """
    Fractional index of the event instant on the hourly axis.

    None when the event falls outside [first hour, last hour].
    """
    if not hours:
        return None
    first = hours[0].time
    last = hours[-1].time
    if not (first <= event_time <= last):
        return None
    span = (last - first).total_seconds()
    if span == 0:
        return 0.0
    return (event_time - first).total_seconds() / span * (len(hours) - 1)


class _Plot:
    """Maps data indices and values onto the plotting rectangle."""

    def __init__(self, width: float, height: float, n: int, y_min: float, y_max: float) -> None:
        self.width = width
        self.height = height
        self.n = n
        self.y_min = y_min
        self.y_range = (y_max - y_min) or 1
        self.pw = width - MARGIN_LEFT - MARGIN_RIGHT
        self.ph = height - MARGIN_TOP - MARGIN_BOTTOM
        self.bottom = MARGIN_TOP + self.ph
        self.right = width - MARGIN_RIGHT

    def x(self, index: float) -> float:
        if self.n <= 1:
            return MARGIN_LEFT + self.pw / 2
        return MARGIN_LEFT + (index / (self.n - 1)) * self.pw

    def y(self, value: float) -> float:
        return MARGIN_TOP + self.ph - ((value - self.y_min) / self.y_range) * self.ph


# ── Renderer ────────────────────────────────────────────────


def render_line_chart(
    spec: ChartSpec,
    width: float,
    height: float,
    *,
    event_time: Optional[dt.datetime] = None,
    event_label: str = "Kickoff",
) -> str:
    """
    Render one series as an inline SVG string.

    Returns "" for a zero-sized container and a "No data" placeholder when
    every value is None.
    """
    if width <= 0 or height <= 0:
        return ""

    values = list(spec.values)
    labels = list(spec.labels)
    valid = [v for v in values if v is not None]
    if not valid:
        return NO_DATA_HTML

    n = len(values)
    y_min, y_max = compute_y_bounds(values, spec.mode)
    plot = _Plot(width, height, n, y_min, y_max)
    threshold = spec.threshold

    svg = [
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {_fmt_value(width)} {_fmt_value(height)}"'
        f' preserveAspectRatio="none" style="width:100%;height:100%">'
    ]

    # adverse zones sit behind everything else
    for start, end in find_adverse_runs(values, threshold, spec.direction):
        x1 = plot.x(max(0.0, start - 0.5))
        x2 = plot.x(min(n - 1.0, end + 0.5))
        if n <= 1:
            x1, x2 = MARGIN_LEFT, plot.right
        svg.append(
            f'<rect class="adverse-zone" x="{_n(x1)}" y="{_n(MARGIN_TOP)}" width="{_n(x2 - x1)}"'
            f' height="{_n(plot.ph)}" fill="{ADVERSE_FILL}" stroke="{ADVERSE_STROKE}"'
            f' stroke-width="1" stroke-dasharray="4,2"/>'
        )

    if threshold is not None and y_min <= threshold <= y_max:
        ty = plot.y(threshold)
        svg.append(_svg_line(MARGIN_LEFT, ty, plot.right, ty, THRESHOLD_STROKE, 1,
                             'class="threshold-line" stroke-dasharray="6,3"'))
        svg.append(_svg_text(plot.right - 2, ty - 3, _fmt_value(threshold),
                             fill=THRESHOLD_TEXT, font_size=11, anchor="end", weight="600"))

    if spec.mode == ChartMode.PERCENTAGE:
        for g in range(1, 5):
            g_val = y_min + (g / 4) * plot.y_range
            gy = plot.y(g_val)
            svg.append(_svg_line(MARGIN_LEFT, gy, plot.right, gy, GRID_STROKE, 0.5))
            svg.append(_svg_text(MARGIN_LEFT - 4, gy + 4, int(math.floor(g_val + 0.5)),
                                 fill=AXIS_TEXT, font_size=13, anchor="end"))
    else:
        g_val = y_min
        while g_val <= y_max:
            gy = plot.y(g_val)
            svg.append(_svg_line(MARGIN_LEFT, gy, plot.right, gy, GRID_STROKE, 0.5))
            if g_val != y_min:
                svg.append(_svg_text(MARGIN_LEFT - 4, gy + 4, int(math.floor(g_val + 0.5)),
                                     fill=AXIS_TEXT, font_size=13, anchor="end"))
            g_val += 5

    for i in range(n):
        vx = plot.x(i)
        svg.append(_svg_line(vx, MARGIN_TOP, vx, plot.bottom, INDEX_STROKE, 0.5))

    for i, label in enumerate(labels):
        if label is None:
            continue
        lx = plot.x(i)
        svg.append(_svg_line(lx, MARGIN_TOP, lx, plot.bottom, TICK_STROKE, 0.5))
        hour_part, _, day_part = label.partition("|")
        svg.append(_svg_text(lx, plot.bottom + 13, hour_part, fill=AXIS_TEXT, font_size=13, anchor="middle"))
        if day_part:
            svg.append(_svg_text(lx, plot.bottom + 24, day_part, fill=DAY_TEXT, font_size=11, anchor="middle"))

    if event_time is not None:
        idx = event_marker_index(spec.hours, event_time)
        if idx is not None:
            kx = plot.x(idx)
            svg.append(_svg_line(kx, MARGIN_TOP, kx, plot.bottom, EVENT_COLOR, 3, 'class="event-marker"'))
            svg.append(_svg_text(kx + 4, MARGIN_TOP + 12, event_label,
                                 fill=EVENT_COLOR, font_size=14, weight="700"))

    points = [(i, plot.x(i), plot.y(v)) for i, v in enumerate(values) if v is not None]

    if len(points) > 1:
        area = " ".join(f"{'M' if k == 0 else 'L'}{_n(px)},{_n(py)}" for k, (_i, px, py) in enumerate(points))
        area += f" L{_n(points[-1][1])},{_n(plot.bottom)} L{_n(points[0][1])},{_n(plot.bottom)} Z"
        svg.append(f'<path class="data-area" d="{area}" fill="{spec.color}" fill-opacity="0.1"/>')

        # a None between two points starts a new sub-path
        line_parts = []
        prev_index = None
        for i, px, py in points:
            command = "L" if prev_index is not None and i == prev_index + 1 else "M"
            line_parts.append(f"{command}{_n(px)},{_n(py)}")
            prev_index = i
        svg.append(
            f'<path class="data-line" d="{" ".join(line_parts)}" fill="none" stroke="{spec.color}"'
            f' stroke-width="2" stroke-linejoin="round" stroke-linecap="round"/>'
        )

    for i, px, py in points:
        adverse = is_adverse(values[i], threshold, spec.direction)
        svg.append(
            f'<circle cx="{_n(px)}" cy="{_n(py)}" r="{3 if adverse else 2}"'
            f' fill="{ALERT_DOT if adverse else spec.color}"/>'
        )

    svg.append("</svg>")
    return "".join(svg)


# ── Timeline composition ────────────────────────────────────


def hour_labels(hours: Sequence[HourlyPoint], tz: ZoneInfo, every: int = 3) -> List[Optional[str]]:
    """Tick labels like "3 PM|Sun" at every `every`-th hour, None elsewhere."""
    labels: List[Optional[str]] = []
    for i, point in enumerate(hours):
        if i % every != 0:
            labels.append(None)
            continue
        local = point.time.astimezone(tz)
        hour12 = local.hour % 12 or 12
        suffix = "AM" if local.hour < 12 else "PM"
        labels.append(f"{hour12} {suffix}|{local.strftime('%a')}")
    return labels


def build_chart_spec(hours: Sequence[HourlyPoint], field: str, thresholds: Optional[AdverseThresholds],
                     tz: ZoneInfo) -> ChartSpec:
    """Assemble the ChartSpec for one resampled field."""
    if field not in FIELD_CHARTS:
        raise KeyError(field)
    color, mode, threshold_attr = FIELD_CHARTS[field]
    thresholds = thresholds or AdverseThresholds()
    return ChartSpec(
        values=[h.value(field) for h in hours],
        labels=hour_labels(hours, tz),
        color=color,
        mode=mode,
        threshold=getattr(thresholds, threshold_attr) if threshold_attr else None,
        direction=ThresholdDirection.ABOVE,
        hours=list(hours),
    )


def render_field_chart(forecast: GridpointForecast, field: str, event: EventConfig,
                       width: float, height: float) -> str:
    """Render a single field of a forecast, or the placeholder when there is nothing to draw."""
    if forecast.error or not forecast.hours:
        return NO_DATA_HTML
    spec = build_chart_spec(forecast.hours, field, forecast.adverse_thresholds, event.tzinfo())
    return render_line_chart(spec, width, height, event_time=event.start_instant())


def render_timeline(forecast: GridpointForecast, event: EventConfig, width: float, row_height: float) -> str:
    """Render the temperature, rain chance and cloud cover rows as one HTML fragment."""
    if forecast.error:
        return f'<div class="error-msg">{html.escape(forecast.error)}</div>'
    if not forecast.hours:
        return '<div class="error-msg">No gridpoint data available</div>'

    tz = event.tzinfo()
    event_time = event.start_instant()
    rows = ['<div class="timeline-chart"><div class="timeline-rows">']
    for field, header, _color, _mode, _attr in TIMELINE_ROWS:
        spec = build_chart_spec(forecast.hours, field, forecast.adverse_thresholds, tz)
        chart = render_line_chart(spec, width, row_height, event_time=event_time)
        rows.append(
            f'<div class="timeline-row"><div class="row-header">{html.escape(header)}</div>'
            f'<div class="row-graph" id="graph-{field}">{chart}</div></div>'
        )
    rows.append("</div></div>")
    logger.debug("Rendered timeline", extra={"rows": len(TIMELINE_ROWS), "hours": len(forecast.hours)})
    return "".join(rows)
