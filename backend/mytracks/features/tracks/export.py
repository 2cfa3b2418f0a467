"""
GPX export.

Renders a stored track back into a GPX 1.1 document for download.
"""

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Optional

GPX_NAMESPACE = "http://www.topografix.com/GPX/1/1"
GPX_CREATOR = "MyTracks"


def format_coordinate(value: float) -> str:
    return f"{value:.6f}"


def format_elevation(value: float) -> str:
    return f"{value:.2f}"


def format_time(value: datetime) -> str:
    """UTC ISO-8601 with a Z suffix. Naive values are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def _text_child(parent: ET.Element, tag: str, text: Optional[str]) -> None:
    if text:
        ET.SubElement(parent, tag).text = text


def build_gpx(track) -> bytes:
    """
    Build a GPX document from a GPXTrack with loaded points.

    One <trk> with one <trkseg>; segment boundaries of the source file
    are not preserved.
    """
    root = ET.Element("gpx", {
        "version": "1.1",
        "creator": GPX_CREATOR,
        "xmlns": GPX_NAMESPACE,
    })

    metadata = ET.SubElement(root, "metadata")
    _text_child(metadata, "name", track.name)
    _text_child(metadata, "desc", track.description)

    trk = ET.SubElement(root, "trk")
    _text_child(trk, "name", track.name)
    _text_child(trk, "desc", track.description)

    trkseg = ET.SubElement(trk, "trkseg")
    for point in track.track_points:
        trkpt = ET.SubElement(trkseg, "trkpt", {
            "lat": format_coordinate(point.latitude),
            "lon": format_coordinate(point.longitude),
        })
        if point.elevation is not None:
            ET.SubElement(trkpt, "ele").text = format_elevation(point.elevation)
        if point.time is not None:
            ET.SubElement(trkpt, "time").text = format_time(point.time)

    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)
