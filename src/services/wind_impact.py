"""Headwind / tailwind / crosswind decomposition along a circuit.

Headings and wind directions are compass degrees: 0 = north, clockwise.
Wind direction is where the wind blows *from*, so a wind from the same
bearing a car is heading towards is a headwind.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional, Sequence, Tuple

from services.sanitize import Unit, normalize_direction
from services.units import get_speed_unit

WindType = Literal["headwind", "tailwind", "crosswind"]
TrackWindType = Literal["headwind", "tailwind", "crosswind", "calm"]
SectionKind = Literal["straight", "corner"]
ImpactLevel = Literal["low", "moderate", "high", "severe"]

CROSSWIND_DOMINANCE = 0.7
CALM_WIND_SPEED = 5.0
CORNER_TURN_DEGREES = 15.0
CURVE_SAMPLES = 4

IMPACT_THRESHOLDS = {
    "metric": {"moderate": 30.0, "high": 50.0, "severe": 70.0},
    "imperial": {"moderate": 19.0, "high": 31.0, "severe": 43.0},
}

_PATH_TOKEN = re.compile(r"[A-Za-z]|-?\d*\.?\d+")

Point = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class TrackSection:
    x: float
    y: float
    heading: float
    kind: SectionKind
    importance: float  # visual emphasis only, 0..1

    def to_dict(self) -> dict[str, object]:
        return {
            "x": self.x,
            "y": self.y,
            "heading": self.heading,
            "kind": self.kind,
            "importance": self.importance,
        }


@dataclass(frozen=True, slots=True)
class WindComponents:
    headwind: float
    tailwind: float
    crosswind: float
    type: WindType
    strength: float

    def to_dict(self) -> dict[str, object]:
        return {
            "headwind": self.headwind,
            "tailwind": self.tailwind,
            "crosswind": self.crosswind,
            "type": self.type,
            "strength": self.strength,
        }


@dataclass(frozen=True, slots=True)
class WindAnalysis:
    head_tailwind: float  # positive = headwind, negative = tailwind
    crosswind: float
    wind_type: TrackWindType
    relative_direction: str
    description: str
    impact_level: ImpactLevel

    def to_dict(self) -> dict[str, object]:
        return {
            "head_tailwind": self.head_tailwind,
            "crosswind": self.crosswind,
            "wind_type": self.wind_type,
            "relative_direction": self.relative_direction,
            "description": self.description,
            "impact_level": self.impact_level,
        }


def relative_angle(track_heading_deg: float, wind_from_deg: float) -> float:
    """Angle of the wind relative to the heading, folded into ``(-180, 180]``."""
    relative = normalize_direction(wind_from_deg - track_heading_deg)
    if relative > 180.0:
        relative -= 360.0
    return relative


def decompose(track_heading_deg: float, wind_from_deg: float, wind_speed: float) -> WindComponents:
    if wind_speed <= 0:
        return WindComponents(headwind=0.0, tailwind=0.0, crosswind=0.0, type="crosswind", strength=0.0)

    radians = math.radians(relative_angle(track_heading_deg, wind_from_deg))
    parallel = wind_speed * math.cos(radians)
    perpendicular = wind_speed * math.sin(radians)
    headwind = max(0.0, parallel)
    tailwind = max(0.0, -parallel)
    crosswind = abs(perpendicular)

    if headwind > tailwind and headwind > CROSSWIND_DOMINANCE * crosswind:
        wind_type: WindType = "headwind"
        dominant = headwind
    elif tailwind > headwind and tailwind > CROSSWIND_DOMINANCE * crosswind:
        wind_type = "tailwind"
        dominant = tailwind
    else:
        wind_type = "crosswind"
        dominant = crosswind

    strength = min(max(dominant / wind_speed, 0.0), 1.0)
    return WindComponents(
        headwind=headwind,
        tailwind=tailwind,
        crosswind=crosswind,
        type=wind_type,
        strength=strength,
    )


def decompose_wind(section: TrackSection, wind_from_deg: float, wind_speed: float) -> WindComponents:
    return decompose(section.heading, wind_from_deg, wind_speed)


def decompose_sections(
    sections: Iterable[TrackSection],
    wind_from_deg: float,
    wind_speed: float,
) -> List[Tuple[TrackSection, WindComponents]]:
    return [(section, decompose_wind(section, wind_from_deg, wind_speed)) for section in sections]


def calculate_angle_difference(angle1: float, angle2: float) -> float:
    """Signed difference ``angle2 - angle1`` in ``[-180, 180]``."""
    diff = angle2 - angle1
    while diff > 180.0:
        diff -= 360.0
    while diff < -180.0:
        diff += 360.0
    return diff


def relative_wind_direction(wind_direction: float, track_direction: float) -> str:
    angle = calculate_angle_difference(track_direction, wind_direction)
    magnitude = abs(angle)
    side = "Right" if angle > 0 else "Left"
    if magnitude <= 22.5:
        return "Direct Headwind"
    if magnitude <= 67.5:
        return f"Headwind from {side}"
    if magnitude <= 112.5:
        return f"Crosswind from {side}"
    if magnitude <= 157.5:
        return f"Tailwind from {side}"
    return "Direct Tailwind"


def _impact_level(wind_speed: float, unit: Unit) -> ImpactLevel:
    limits = IMPACT_THRESHOLDS["imperial" if unit == "imperial" else "metric"]
    if wind_speed >= limits["severe"]:
        return "severe"
    if wind_speed >= limits["high"]:
        return "high"
    if wind_speed >= limits["moderate"]:
        return "moderate"
    return "low"


def analyze_track_wind(
    wind_speed: float,
    wind_direction: float,
    track_direction: float,
    unit: Unit = "metric",
) -> WindAnalysis:
    """Summarize the wind on a circuit's main straight for display."""
    angle = math.radians(calculate_angle_difference(track_direction, wind_direction))
    head_tailwind = wind_speed * math.cos(angle)
    crosswind = abs(wind_speed * math.sin(angle))
    speed_unit = get_speed_unit(unit)

    magnitude = abs(math.degrees(angle))
    if wind_speed < CALM_WIND_SPEED:
        wind_type: TrackWindType = "calm"
        description = "Calm conditions with minimal wind impact on racing."
    elif magnitude <= 45.0:
        wind_type = "headwind"
        description = (
            f"{abs(round(head_tailwind))} {speed_unit} headwind on the main straight. "
            "Reduces top speed and increases braking stability."
        )
    elif magnitude >= 135.0:
        wind_type = "tailwind"
        description = (
            f"{abs(round(head_tailwind))} {speed_unit} tailwind on the main straight. "
            "Increases top speed but may reduce braking stability."
        )
    else:
        wind_type = "crosswind"
        description = (
            f"{round(crosswind)} {speed_unit} crosswind. "
            "May affect vehicle stability through corners and on straights."
        )

    return WindAnalysis(
        head_tailwind=head_tailwind,
        crosswind=crosswind,
        wind_type=wind_type,
        relative_direction=relative_wind_direction(wind_direction, track_direction),
        description=description,
        impact_level=_impact_level(wind_speed, unit),
    )


def _parse_path(path: str) -> Tuple[List[Point], List[bool]]:
    """Sample the first subpath; returns the points and, per segment, whether it lies on a curve."""
    tokens = _PATH_TOKEN.findall(path)
    points: List[Point] = []
    curved: List[bool] = []
    command: Optional[str] = None
    idx = 0

    def number() -> float:
        nonlocal idx
        value = float(tokens[idx])
        idx += 1
        return value

    while idx < len(tokens):
        token = tokens[idx]
        if token.isalpha():
            command = "Z" if token == "z" else token
            idx += 1
            if command == "Z":
                if points and points[-1] != points[0]:
                    points.append(points[0])
                    curved.append(False)
                break
            if command == "M" and points:
                break
            continue
        if command in ("M", "L"):
            if points:
                curved.append(False)
            points.append((number(), number()))
        elif command == "Q" and points:
            control = (number(), number())
            end = (number(), number())
            start = points[-1]
            for step in range(1, CURVE_SAMPLES + 1):
                t = step / CURVE_SAMPLES
                inv = 1.0 - t
                points.append(
                    (
                        inv * inv * start[0] + 2 * inv * t * control[0] + t * t * end[0],
                        inv * inv * start[1] + 2 * inv * t * control[1] + t * t * end[1],
                    )
                )
                curved.append(True)
        else:
            raise ValueError(f"Unsupported path data near token {idx}: {token!r}")
    return points, curved


def path_points(path: str) -> List[Point]:
    """Sample the first subpath of an SVG outline (absolute M, L, Q and Z only)."""
    return _parse_path(path)[0]


def _heading(start: Point, end: Point) -> float:
    # SVG y grows downwards, so north is -y.
    return normalize_direction(math.degrees(math.atan2(end[0] - start[0], start[1] - end[1])))


def sections_from_points(points: Sequence[Point], curved: Optional[Sequence[bool]] = None) -> List[TrackSection]:
    """Turn an ordered polyline into heading samples, one per segment.

    Without ``curved`` flags a segment is a corner when the heading changes by
    more than ``CORNER_TURN_DEGREES`` into the next segment. With them, only
    curve samples can be corners, and only where the bend at either end of
    the sample exceeds that threshold; a gentle sweep stays a straight.
    Importance is the segment's share of the longest straight, or for corners
    the turn angle as a fraction of 90 degrees.
    """
    flags = list(curved) if curved is not None else [False] * max(len(points) - 1, 0)
    pairs = [((a, b), flag) for a, b, flag in zip(points, points[1:], flags) if a != b]
    if not pairs:
        return []
    segments = [segment for segment, _ in pairs]
    closed = points[0] == points[-1]
    lengths = [math.dist(a, b) for a, b in segments]
    headings = [_heading(a, b) for a, b in segments]

    def bend(idx: int, offset: int) -> float:
        other = idx + offset
        if 0 <= other < len(headings):
            neighbour = headings[other]
        elif closed:
            neighbour = headings[other % len(headings)]
        else:
            return 0.0
        return abs(calculate_angle_difference(headings[idx], neighbour))

    turns: List[float] = []
    for idx, (_, on_curve) in enumerate(pairs):
        if curved is None:
            turns.append(bend(idx, 1))
        elif on_curve:
            # A quadratic curve is split into CURVE_SAMPLES pieces, so the
            # whole bend is roughly that many times the bend per piece.
            turns.append(max(bend(idx, -1), bend(idx, 1)) * CURVE_SAMPLES)
        else:
            turns.append(0.0)

    def is_corner(idx: int) -> bool:
        if curved is None:
            return turns[idx] > CORNER_TURN_DEGREES
        return pairs[idx][1] and turns[idx] > CORNER_TURN_DEGREES * CURVE_SAMPLES

    corners = [is_corner(idx) for idx in range(len(segments))]
    longest_straight = max(
        (length for length, corner in zip(lengths, corners) if not corner),
        default=max(lengths),
    )
    sections: List[TrackSection] = []
    for (start, end), length, heading, turn, corner in zip(segments, lengths, headings, turns, corners):
        if corner:
            kind: SectionKind = "corner"
            importance = turn / 90.0
        else:
            kind = "straight"
            importance = length / longest_straight
        sections.append(
            TrackSection(
                x=(start[0] + end[0]) / 2.0,
                y=(start[1] + end[1]) / 2.0,
                heading=heading,
                kind=kind,
                importance=min(max(importance, 0.0), 1.0),
            )
        )
    return sections


def sections_from_path(path: str) -> List[TrackSection]:
    points, curved = _parse_path(path)
    return sections_from_points(points, curved)


def main_straight_heading(sections: Sequence[TrackSection]) -> Optional[float]:
    """Heading of the most important straight, or ``None`` for an empty layout."""
    straights = [section for section in sections if section.kind == "straight"]
    if not straights:
        return sections[0].heading if sections else None
    return max(straights, key=lambda section: section.importance).heading
