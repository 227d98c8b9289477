import datetime as dt
import re
import unittest

from eventwx.chart_renderer import (
    NO_DATA_HTML,
    build_chart_spec,
    compute_y_bounds,
    event_marker_index,
    find_adverse_runs,
    hour_labels,
    render_field_chart,
    render_line_chart,
    render_timeline,
)
from eventwx.domain import (
    AdverseThresholds,
    ChartMode,
    ChartSpec,
    EventConfig,
    GridpointForecast,
    HourlyPoint,
    ThresholdDirection,
)

UTC = dt.timezone.utc
START = dt.datetime(2026, 2, 8, 23, tzinfo=UTC)  # 3 PM Sunday in Los Angeles


def _hours(n, **fields):
    out = []
    for i in range(n):
        values = {name: series[i] for name, series in fields.items()}
        out.append(HourlyPoint(time=START + dt.timedelta(hours=i), values=values))
    return out


def _spec(values, threshold=None, mode=ChartMode.NATURAL, direction=ThresholdDirection.ABOVE):
    return ChartSpec(
        values=values,
        labels=[None] * len(values),
        color="#2196f3",
        mode=mode,
        threshold=threshold,
        direction=direction,
        hours=_hours(len(values)),
    )


def _line_path(svg):
    match = re.search(r'class="data-line" d="([^"]+)"', svg)
    return match.group(1) if match else None


class TestScaling(unittest.TestCase):
    def test_percentage_is_fixed(self):
        self.assertEqual(compute_y_bounds([3, 7], ChartMode.PERCENTAGE), (0.0, 100.0))
        self.assertEqual(compute_y_bounds([0] * 24, ChartMode.PERCENTAGE), (0.0, 100.0))
        self.assertEqual(compute_y_bounds([100] * 24, ChartMode.PERCENTAGE), (0.0, 100.0))

    def test_natural_pads_and_snaps(self):
        self.assertEqual(compute_y_bounds([60, 62], ChartMode.NATURAL), (55.0, 65.0))
        self.assertEqual(compute_y_bounds([70, None, 82], ChartMode.NATURAL), (65.0, 85.0))

    def test_natural_widens_narrow_span(self):
        self.assertEqual(compute_y_bounds([52.5], ChartMode.NATURAL), (45.0, 60.0))


class TestAdverseRuns(unittest.TestCase):
    def test_maximal_runs(self):
        self.assertEqual(find_adverse_runs([70, 81, 82, None, 85, 79], 80), [(1, 2), (4, 4)])

    def test_equal_is_not_adverse(self):
        self.assertEqual(find_adverse_runs([80, 80], 80), [])

    def test_run_to_end(self):
        self.assertEqual(find_adverse_runs([1, 90, 91], 80), [(1, 2)])

    def test_below_direction(self):
        self.assertEqual(find_adverse_runs([10, 5, 20], 8, ThresholdDirection.BELOW), [(1, 1)])

    def test_no_threshold(self):
        self.assertEqual(find_adverse_runs([100, 200], None), [])


class TestRenderLineChart(unittest.TestCase):
    def test_zero_size_renders_nothing(self):
        self.assertEqual(render_line_chart(_spec([60, 61]), 0, 100), "")
        self.assertEqual(render_line_chart(_spec([60, 61]), 100, 0), "")

    def test_all_null_renders_placeholder(self):
        out = render_line_chart(_spec([None, None, None]), 300, 100)
        self.assertEqual(out, NO_DATA_HTML)
        self.assertIn("No data", out)
        self.assertNotIn("<svg", out)

    def test_adverse_zone_and_threshold_line(self):
        svg = render_line_chart(_spec([70, 81, 82, 75], threshold=80), 400, 160)
        self.assertEqual(svg.count('class="adverse-zone"'), 1)
        self.assertIn('class="threshold-line"', svg)
        self.assertEqual(svg.count('r="3" fill="#ffc107"'), 2)
        self.assertEqual(svg.count('r="2" fill="#2196f3"'), 2)

    def test_threshold_outside_range_has_no_line(self):
        svg = render_line_chart(_spec([60, 61], threshold=100), 400, 160)
        self.assertNotIn('class="threshold-line"', svg)
        self.assertNotIn('class="adverse-zone"', svg)

    def test_zones_are_drawn_first(self):
        svg = render_line_chart(_spec([70, 81, 82, 75], threshold=80), 400, 160)
        self.assertLess(svg.index('class="adverse-zone"'), svg.index("<line"))

    def test_nulls_break_the_line(self):
        svg = render_line_chart(_spec([60, None, 62, 63]), 400, 160)
        path = _line_path(svg)
        self.assertEqual(path.count("M"), 2)
        self.assertEqual(path.count("L"), 1)
        self.assertEqual(svg.count("<circle"), 3)

    def test_single_point_is_centered(self):
        svg = render_line_chart(_spec([60]), 200, 160)
        self.assertIn('cx="115.0"', svg)
        self.assertIsNone(_line_path(svg))

    def test_percentage_gridlines_have_labels(self):
        svg = render_line_chart(_spec([10, 20], mode=ChartMode.PERCENTAGE), 400, 160)
        for label in ("25", "50", "75", "100"):
            self.assertIn(f">{label}</text>", svg)

    def _axis_labels(self, svg):
        return re.findall(r'<text x="34\.0" y="[^"]+" text-anchor="end"[^>]*>(\d+)</text>', svg)

    def test_percentage_all_zero_sits_on_bottom_edge(self):
        svg = render_line_chart(_spec([0] * 24, mode=ChartMode.PERCENTAGE), 400, 160)
        self.assertEqual(self._axis_labels(svg), ["25", "50", "75", "100"])
        dots = re.findall(r'<circle cx="[^"]+" cy="([^"]+)"', svg)
        self.assertEqual(len(dots), 24)
        self.assertEqual(set(dots), {"132.0"})

    def test_percentage_all_hundred_sits_on_top_edge(self):
        svg = render_line_chart(_spec([100] * 24, mode=ChartMode.PERCENTAGE), 400, 160)
        self.assertEqual(self._axis_labels(svg), ["25", "50", "75", "100"])
        dots = re.findall(r'<circle cx="[^"]+" cy="([^"]+)"', svg)
        self.assertEqual(len(dots), 24)
        self.assertEqual(set(dots), {"14.0"})

    def test_natural_bottom_label_suppressed(self):
        svg = render_line_chart(_spec([60, 62]), 400, 160)
        self.assertNotIn(">55</text>", svg)
        self.assertIn(">60</text>", svg)
        self.assertIn(">65</text>", svg)

    def test_event_marker_inside_window(self):
        spec = _spec([60, 61, 62, 63])
        svg = render_line_chart(spec, 400, 160, event_time=START + dt.timedelta(minutes=90))
        self.assertIn('class="event-marker"', svg)
        self.assertIn(">Kickoff</text>", svg)
        self.assertLess(svg.index('class="event-marker"'), svg.index('class="data-line"'))

    def test_event_marker_outside_window(self):
        spec = _spec([60, 61, 62, 63])
        svg = render_line_chart(spec, 400, 160, event_time=START - dt.timedelta(hours=1))
        self.assertNotIn('class="event-marker"', svg)

    def test_deterministic_and_clean(self):
        spec = _spec([60, None, 62.25, 63])
        first = render_line_chart(spec, 333, 121)
        self.assertEqual(first, render_line_chart(spec, 333, 121))
        self.assertNotIn("nan", first.lower())
        self.assertNotIn("None", first)

    def test_tick_labels_are_stacked(self):
        spec = _spec([60, 61, 62])
        spec.labels = ["3 PM|Sun", None, None]
        svg = render_line_chart(spec, 400, 160)
        self.assertIn(">3 PM</text>", svg)
        self.assertIn(">Sun</text>", svg)


class TestEventMarkerIndex(unittest.TestCase):
    def test_interpolates(self):
        hours = _hours(4)
        self.assertEqual(event_marker_index(hours, START + dt.timedelta(minutes=90)), 1.5)

    def test_bounds_are_inclusive(self):
        hours = _hours(4)
        self.assertEqual(event_marker_index(hours, START), 0.0)
        self.assertEqual(event_marker_index(hours, START + dt.timedelta(hours=3)), 3.0)
        self.assertIsNone(event_marker_index(hours, START + dt.timedelta(hours=4)))


class TestTimeline(unittest.TestCase):
    def setUp(self):
        self.event = EventConfig()

    def test_hour_labels_every_third_hour_in_event_timezone(self):
        labels = hour_labels(_hours(4), self.event.tzinfo())
        self.assertEqual(labels, ["3 PM|Sun", None, None, "6 PM|Sun"])

    def test_chart_spec_uses_thresholds(self):
        hours = _hours(2, temperature=[70, 85])
        spec = build_chart_spec(hours, "temperature", AdverseThresholds(max_temp=75), self.event.tzinfo())
        self.assertEqual(spec.threshold, 75)
        self.assertEqual(spec.values, [70, 85])
        self.assertEqual(spec.mode, ChartMode.NATURAL)

    def test_unknown_field(self):
        with self.assertRaises(KeyError):
            build_chart_spec(_hours(1), "ozone", None, self.event.tzinfo())

    def test_error_forecast_renders_message(self):
        forecast = GridpointForecast.failed("Unable to fetch gridpoint forecast: boom")
        out = render_timeline(forecast, self.event, 600, 160)
        self.assertIn('class="error-msg"', out)
        self.assertIn("boom", out)
        self.assertNotIn("<svg", out)

    def test_three_rows(self):
        n = 6
        hours = _hours(n, temperature=[60] * n, probabilityOfPrecipitation=[10] * n, skyCover=[80] * n)
        forecast = GridpointForecast(timestamp=START, hours=hours, adverse_thresholds=AdverseThresholds())
        out = render_timeline(forecast, self.event, 600, 160)
        self.assertEqual(out.count('class="row-graph"'), 3)
        self.assertEqual(out.count("<svg"), 3)
        self.assertIn("Cloud Cover (%)", out)

    def test_field_chart_without_data(self):
        forecast = GridpointForecast(timestamp=START, hours=_hours(3))
        self.assertEqual(render_field_chart(forecast, "dewpoint", self.event, 300, 100), NO_DATA_HTML)


if __name__ == "__main__":
    unittest.main()
