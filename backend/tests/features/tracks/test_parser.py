"""
Tests for GPX parsing and track statistics.
"""

from datetime import datetime

import pytest

from mytracks.features.tracks import GPXParserService, ParseError
from mytracks.features.tracks.parser import (
    ELEVATION_DELTA,
    ELEVATION_SEGMENTED,
    ParsedPoint,
    name_from_filename,
)
from mytracks.shared.geo import haversine

from conftest import build_gpx


def _gpx(body: str) -> bytes:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">'
        f"{body}</gpx>"
    ).encode("utf-8")


# =============================================================================
# Test Parsing
# =============================================================================

class TestParse:
    """Tests for GPXParserService.parse."""

    def test_basic_statistics(self):
        parsed = GPXParserService.parse(build_gpx(description="Loop"), "seattle.gpx")

        assert parsed.filename == "seattle.gpx"
        assert parsed.name == "Test Track"
        assert parsed.description == "Loop"
        assert len(parsed.points) == 4
        assert parsed.bounds.north == pytest.approx(47.6030)
        assert parsed.bounds.south == pytest.approx(47.6000)
        assert parsed.bounds.east == pytest.approx(-122.3300)
        assert parsed.bounds.west == pytest.approx(-122.3330)
        assert parsed.max_elevation_m == 120.0
        assert parsed.min_elevation_m == 100.0
        assert parsed.elevation_gain_m == pytest.approx(20.0)
        assert parsed.elevation_loss_m == pytest.approx(5.0)
        assert parsed.distance_m > 0
        assert parsed.crosses_antimeridian is False

    def test_times_and_duration(self):
        parsed = GPXParserService.parse(build_gpx(), "seattle.gpx")
        assert parsed.start_time == datetime(2024, 5, 1, 10, 0, 0)
        assert parsed.end_time == datetime(2024, 5, 1, 10, 15, 0)
        assert parsed.duration_s == 900

    def test_offset_times_normalized_to_utc(self):
        """Timestamps with an offset are stored as naive UTC."""
        content = build_gpx(points=[
            (47.0, -122.0, None, "2024-05-01T12:00:00+02:00"),
            (47.001, -122.0, None, "2024-05-01T12:30:00+02:00"),
        ])
        parsed = GPXParserService.parse(content, "offset.gpx")
        assert parsed.start_time == datetime(2024, 5, 1, 10, 0, 0)
        assert parsed.start_time.tzinfo is None
        assert parsed.duration_s == 1800

    def test_no_times(self):
        content = build_gpx(points=[(47.0, -122.0, 10.0, None), (47.1, -122.0, 20.0, None)])
        parsed = GPXParserService.parse(content, "untimed.gpx")
        assert parsed.start_time is None
        assert parsed.end_time is None
        assert parsed.duration_s == 0

    def test_no_elevations(self):
        content = build_gpx(points=[(47.0, -122.0, None, None), (47.1, -122.0, None, None)])
        parsed = GPXParserService.parse(content, "flat.gpx")
        assert parsed.max_elevation_m == 0.0
        assert parsed.min_elevation_m == 0.0
        assert parsed.elevation_gain_m == 0.0
        assert parsed.elevation_loss_m == 0.0

    def test_name_falls_back_to_filename(self):
        parsed = GPXParserService.parse(build_gpx(name=None), "Mount Si.gpx")
        assert parsed.name == "Mount Si"

    def test_blank_name_falls_back_to_filename(self):
        parsed = GPXParserService.parse(build_gpx(name="   "), "rattlesnake.gpx")
        assert parsed.name == "rattlesnake"

    def test_segments_concatenated(self):
        content = _gpx(
            "<trk><name>Two segments</name>"
            '<trkseg><trkpt lat="1.0" lon="1.0"/><trkpt lat="1.0" lon="2.0"/></trkseg>'
            '<trkseg><trkpt lat="2.0" lon="2.0"/></trkseg>'
            "</trk>"
        )
        parsed = GPXParserService.parse(content, "segments.gpx")
        assert [(p.latitude, p.longitude) for p in parsed.points] == [
            (1.0, 1.0), (1.0, 2.0), (2.0, 2.0),
        ]
        expected = haversine(1.0, 1.0, 1.0, 2.0) + haversine(1.0, 2.0, 2.0, 2.0)
        assert parsed.distance_m == pytest.approx(expected)

    def test_only_first_track_used(self):
        content = _gpx(
            '<trk><name>First</name><trkseg><trkpt lat="1.0" lon="1.0"/></trkseg></trk>'
            '<trk><name>Second</name><trkseg><trkpt lat="50.0" lon="50.0"/></trkseg></trk>'
        )
        parsed = GPXParserService.parse(content, "multi.gpx")
        assert parsed.name == "First"
        assert len(parsed.points) == 1
        assert parsed.bounds.north == 1.0

    def test_single_point(self):
        content = _gpx('<trk><name>Dot</name><trkseg><trkpt lat="3.0" lon="4.0"/></trkseg></trk>')
        parsed = GPXParserService.parse(content, "dot.gpx")
        assert parsed.distance_m == 0.0
        assert parsed.bounds.north == parsed.bounds.south == 3.0

    def test_antimeridian_flagged(self):
        content = build_gpx(points=[
            (-17.0, 179.9, None, None),
            (-17.0, -179.9, None, None),
        ])
        parsed = GPXParserService.parse(content, "fiji.gpx")
        assert parsed.crosses_antimeridian is True
        # widened box kept
        assert parsed.bounds.west == pytest.approx(-179.9)
        assert parsed.bounds.east == pytest.approx(179.9)


# =============================================================================
# Test Parse Errors
# =============================================================================

class TestParseErrors:
    """Tests for unusable documents."""

    def test_malformed_xml(self):
        with pytest.raises(ParseError):
            GPXParserService.parse(b"<gpx><trk><trkseg>", "broken.gpx")

    def test_not_utf8(self):
        with pytest.raises(ParseError):
            GPXParserService.parse(b"\xff\xfe\x00garbage", "binary.gpx")

    def test_no_tracks(self):
        content = _gpx('<wpt lat="1.0" lon="1.0"><name>Only a waypoint</name></wpt>')
        with pytest.raises(ParseError):
            GPXParserService.parse(content, "waypoints.gpx")

    def test_first_track_without_points(self):
        content = _gpx("<trk><name>Empty</name><trkseg></trkseg></trk>")
        with pytest.raises(ParseError):
            GPXParserService.parse(content, "empty.gpx")

    def test_unknown_elevation_method(self):
        with pytest.raises(ValueError):
            GPXParserService.parse(build_gpx(), "x.gpx", elevation_method="smoothed")


# =============================================================================
# Test Elevation Methods
# =============================================================================

class TestElevationMethods:
    """Segmented vs naive delta gain/loss."""

    JITTER = [
        ParsedPoint(latitude=47.0, longitude=-122.0, elevation=100.0),
        ParsedPoint(latitude=47.0001, longitude=-122.0, elevation=100.3),
        ParsedPoint(latitude=47.0002, longitude=-122.0, elevation=100.1),
        ParsedPoint(latitude=47.0003, longitude=-122.0, elevation=100.4),
    ]

    def test_segmented_ignores_jitter(self):
        parsed = GPXParserService.summarize(self.JITTER, "j.gpx", elevation_method=ELEVATION_SEGMENTED)
        assert parsed.elevation_gain_m == 0.0
        assert parsed.elevation_loss_m == 0.0

    def test_delta_counts_jitter(self):
        parsed = GPXParserService.summarize(self.JITTER, "j.gpx", elevation_method=ELEVATION_DELTA)
        assert parsed.elevation_gain_m == pytest.approx(0.6)
        assert parsed.elevation_loss_m == pytest.approx(0.2)


class TestNameFromFilename:
    """Tests for name_from_filename."""

    @pytest.mark.parametrize("filename,expected", [
        ("Mount Si.gpx", "Mount Si"),
        ("trails/2024/loop.GPX", "loop"),
        ("noext", "noext"),
    ])
    def test_stem(self, filename, expected):
        assert name_from_filename(filename) == expected
