from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from services.wind_impact import TrackSection, main_straight_heading, sections_from_path

logger = logging.getLogger("circuitweather.circuits")

CATEGORIES = ("f1", "motogp", "f2", "f3")
SLUG_SUFFIXES = ("-mgp", "-f2", "-f3")


@dataclass(frozen=True, slots=True)
class Circuit:
    slug: str
    name: str
    country: str
    latitude: float
    longitude: float
    category: str
    track_direction: Optional[float] = None  # main straight heading, degrees

    def to_dict(self) -> Dict[str, object]:
        return {
            "slug": self.slug,
            "name": self.name,
            "country": self.country,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "category": self.category,
            "track_direction": self.track_direction,
        }


_Row = Tuple[str, str, str, float, float, Optional[float]]

_F1: List[_Row] = [
    ("bahrain", "Bahrain International Circuit", "Bahrain", 26.0325, 50.5106, None),
    ("jeddah", "Jeddah Corniche Circuit", "Saudi Arabia", 21.6319, 39.1044, None),
    ("albert-park", "Albert Park Circuit", "Australia", -37.8497, 144.968, None),
    ("suzuka", "Suzuka Circuit", "Japan", 34.8431, 136.5419, None),
    ("shanghai", "Shanghai International Circuit", "China", 31.3389, 121.2206, None),
    ("miami", "Miami International Autodrome", "USA", 25.958, -80.2389, None),
    ("imola", "Imola - Autodromo Enzo e Dino Ferrari", "Italy", 44.3439, 11.7167, None),
    ("monaco", "Circuit de Monaco", "Monaco", 43.7347, 7.4206, None),
    ("barcelona", "Circuit de Barcelona-Catalunya", "Spain", 41.57, 2.2611, None),
    ("gilles-villeneuve", "Circuit Gilles Villeneuve", "Canada", 45.5, -73.5228, None),
    ("red-bull-ring", "Red Bull Ring", "Austria", 47.2197, 14.7647, None),
    ("silverstone", "Silverstone Circuit", "UK", 52.0733, -1.0142, None),
    ("hungaroring", "Hungaroring", "Hungary", 47.5789, 19.2486, None),
    ("spa", "Circuit de Spa-Francorchamps", "Belgium", 50.4372, 5.9714, None),
    ("zandvoort", "Circuit Zandvoort", "Netherlands", 52.3885, 4.5402, None),
    ("monza", "Monza - Autodromo Nazionale", "Italy", 45.6183, 9.2811, None),
    ("baku", "Baku City Circuit", "Azerbaijan", 40.3725, 49.8533, None),
    ("marina-bay", "Marina Bay Street Circuit", "Singapore", 1.2914, 103.864, None),
    ("cota", "Circuit of The Americas", "USA", 30.1328, -97.6411, None),
    ("mexico-city", "Autódromo Hermanos Rodríguez", "Mexico", 19.4042, -99.0907, None),
    ("interlagos", "Autódromo José Carlos Pace", "Brazil", -23.701, -46.6988, None),
    ("las-vegas", "Las Vegas Strip Circuit", "USA", 36.1147, -115.173, None),
    ("lusail", "Lusail International Circuit", "Qatar", 25.4889, 51.4542, None),
    ("yas-marina", "Yas Marina Circuit", "UAE", 24.4672, 54.6031, None),
]

_MOTOGP: List[_Row] = [
    ("losail", "Lusail International Circuit", "Qatar", 25.4889, 51.4542, None),
    ("portimao", "Algarve International Circuit", "Portugal", 37.2301, -8.6267, None),
    ("cota-mgp", "Circuit of The Americas", "USA", 30.1328, -97.6411, None),
    ("jerez", "Circuito de Jerez", "Spain", 36.7081, -6.0353, None),
    ("lemans", "Bugatti Circuit (Le Mans)", "France", 47.955, 0.2243, None),
    ("barcelona-mgp", "Circuit de Barcelona-Catalunya", "Spain", 41.57, 2.2611, None),
    ("mugello", "Mugello Circuit", "Italy", 43.9975, 11.3713, None),
    ("assen", "TT Circuit Assen", "Netherlands", 52.9553, 6.5222, None),
    ("sachsenring", "Sachsenring", "Germany", 50.7972, 12.6883, None),
    ("silverstone-mgp", "Silverstone Circuit", "UK", 52.0733, -1.0142, None),
    ("red-bull-ring-mgp", "Red Bull Ring", "Austria", 47.2197, 14.7647, None),
    ("aragon", "MotorLand Aragón", "Spain", 41.227, -0.2089, None),
    ("misano", "Misano World Circuit", "San Marino", 43.9947, 12.6928, None),
    ("sokol", "Sokol International Racetrack", "Kazakhstan", 43.498, 77.116, None),
    ("mandalika", "Pertamina Mandalika International Circuit", "Indonesia", -8.8441, 116.324, None),
    ("motegi", "Mobility Resort Motegi", "Japan", 36.5319, 140.2279, None),
    ("buriram", "Chang International Circuit", "Thailand", 15.2296, 103.0439, None),
    ("phillip-island", "Phillip Island", "Australia", -38.5042, 145.237, None),
    ("sepang", "Sepang International Circuit", "Malaysia", 2.7608, 101.7372, None),
    ("valencia", "Circuit Ricardo Tormo", "Spain", 39.4895, -0.6262, None),
]

_F2: List[_Row] = [
    ("albert-park-f2", "Albert Park Circuit", "Australia", -37.8497, 144.968, 180.0),
    ("bahrain-f2", "Bahrain International Circuit", "Bahrain", 26.0325, 50.5106, 0.0),
    ("jeddah-f2", "Jeddah Corniche Circuit", "Saudi Arabia", 21.6319, 39.1044, 315.0),
    ("monaco-f2", "Circuit de Monaco", "Monaco", 43.7347, 7.4206, 90.0),
    ("barcelona-f2", "Circuit de Barcelona-Catalunya", "Spain", 41.57, 2.2611, 0.0),
    ("red-bull-ring-f2", "Red Bull Ring", "Austria", 47.2197, 14.7647, 45.0),
    ("silverstone-f2", "Silverstone Circuit", "UK", 52.0733, -1.0142, 180.0),
    ("spa-f2", "Circuit de Spa-Francorchamps", "Belgium", 50.4372, 5.9714, 270.0),
    ("hungaroring-f2", "Hungaroring", "Hungary", 47.5789, 19.2486, 135.0),
    ("monza-f2", "Monza - Autodromo Nazionale", "Italy", 45.6183, 9.2811, 0.0),
    ("madrid-ring-f2", "Madrid Ring", "Spain", 40.4168, -3.7038, 90.0),
    ("baku-f2", "Baku City Circuit", "Azerbaijan", 40.3725, 49.8533, 180.0),
    ("lusail-f2", "Lusail International Circuit", "Qatar", 25.4889, 51.4542, 180.0),
    ("yas-marina-f2", "Yas Marina Circuit", "UAE", 24.4672, 54.6031, 270.0),
]

_F3: List[_Row] = [
    ("albert-park-f3", "Albert Park Circuit", "Australia", -37.8497, 144.968, 180.0),
    ("bahrain-f3", "Bahrain International Circuit", "Bahrain", 26.0325, 50.5106, 0.0),
    ("monaco-f3", "Circuit de Monaco", "Monaco", 43.7347, 7.4206, 90.0),
    ("barcelona-f3", "Circuit de Barcelona-Catalunya", "Spain", 41.57, 2.2611, 0.0),
    ("red-bull-ring-f3", "Red Bull Ring", "Austria", 47.2197, 14.7647, 45.0),
    ("silverstone-f3", "Silverstone Circuit", "UK", 52.0733, -1.0142, 180.0),
    ("spa-f3", "Circuit de Spa-Francorchamps", "Belgium", 50.4372, 5.9714, 270.0),
    ("hungaroring-f3", "Hungaroring", "Hungary", 47.5789, 19.2486, 135.0),
    ("monza-f3", "Monza - Autodromo Nazionale", "Italy", 45.6183, 9.2811, 0.0),
    ("madrid-ring-f3", "Madrid Ring", "Spain", 40.4168, -3.7038, 90.0),
]

# Schematic outlines on a 100x100 canvas, y pointing down.
TRACK_LAYOUTS: Dict[str, str] = {
    "monaco": "M15,45 L25,45 Q30,40 35,45 L45,45 Q50,50 55,45 L65,45 Q70,40 75,45 L85,45 Q90,50 85,55 L75,55 Q70,60 65,55 L55,55 Q50,50 45,55 L35,55 Q30,60 25,55 L15,55 Q10,50 15,45 Z",
    "silverstone": "M20,30 Q40,20 60,25 Q80,30 85,50 Q80,70 60,75 Q40,80 20,70 Q15,50 20,30 Z",
    "spa": "M15,60 Q20,40 40,35 Q60,30 75,40 Q85,50 80,65 Q75,80 55,85 Q35,90 20,80 Q10,70 15,60 Z",
    "monza": "M20,25 L80,25 Q85,30 80,35 L75,35 Q70,40 75,45 L80,45 Q85,50 80,55 L20,55 Q15,60 20,65 L80,65 Q85,70 80,75 L20,75",
    "suzuka": "M30,20 Q50,15 70,25 Q85,35 80,55 Q75,75 55,80 Q35,85 25,70 Q15,50 20,35 Q25,20 30,20 Z",
    "interlagos": "M25,30 Q45,20 65,30 Q80,45 75,65 Q70,80 50,85 Q30,80 20,65 Q15,45 25,30 Z",
    "hungaroring": "M20,40 Q30,25 50,30 Q70,35 75,55 Q70,75 50,80 Q30,85 20,70 Q15,50 20,40 Z",
    "red-bull-ring": "M20,50 Q30,30 50,35 Q70,40 80,60 Q75,80 55,85 Q35,80 25,65 Q15,55 20,50 Z",
    "zandvoort": "M25,35 Q45,25 65,35 Q80,50 75,70 Q70,85 50,80 Q30,75 20,60 Q15,45 25,35 Z",
    "baku": "M15,50 L30,50 Q40,40 50,50 L60,50 Q70,40 80,50 L85,50 Q90,55 85,60 L80,60 Q70,70 60,60 L50,60 Q40,70 30,60 L15,60 Q10,55 15,50 Z",
    "marina-bay": "M20,30 L70,30 Q80,35 75,45 L70,45 Q65,55 70,65 L75,65 Q80,75 70,80 L20,80 Q15,75 20,70 L25,70 Q30,60 25,50 L20,50 Q15,45 20,40 L25,40 Q30,35 25,30 Z",
    "cota": "M25,40 Q35,25 55,30 Q75,35 80,55 Q75,75 55,80 Q35,85 25,70 Q20,50 25,40 Z",
    "mexico-city": "M20,35 Q40,25 60,35 Q80,45 75,65 Q70,85 50,80 Q30,75 20,60 Q15,45 20,35 Z",
    "las-vegas": "M15,40 L85,40 Q90,45 85,50 L80,50 Q75,55 80,60 L85,60 Q90,65 85,70 L15,70 Q10,65 15,60 L20,60 Q25,55 20,50 L15,50 Q10,45 15,40 Z",
    "lusail": "M20,35 Q40,25 60,35 Q80,45 75,65 Q70,85 50,80 Q30,75 20,60 Q15,45 20,35 Z",
    "yas-marina": "M25,30 Q45,20 65,30 Q80,40 75,60 Q70,80 50,85 Q30,80 20,65 Q15,45 25,30 Z",
    "bahrain": "M20,40 Q30,25 50,30 Q70,35 80,55 Q75,75 55,80 Q35,85 25,70 Q15,55 20,40 Z",
    "jeddah": "M15,45 L30,45 Q40,35 50,45 L60,45 Q70,35 80,45 L85,45 Q90,50 85,55 L80,55 Q70,65 60,55 L50,55 Q40,65 30,55 L15,55 Q10,50 15,45 Z",
    "albert-park": "M25,35 Q45,25 65,35 Q80,50 75,70 Q70,85 50,80 Q30,75 20,60 Q15,45 25,35 Z",
    "shanghai": "M20,40 Q35,25 55,30 Q75,35 80,55 Q75,75 55,80 Q35,85 20,70 Q15,50 20,40 Z",
    "miami": "M20,35 L70,35 Q80,40 75,50 L70,50 Q65,60 70,70 L75,70 Q80,80 70,85 L20,85 Q15,80 20,75 L25,75 Q30,65 25,55 L20,55 Q15,50 20,45 L25,45 Q30,40 25,35 Z",
    "imola": "M25,30 Q45,20 65,30 Q80,45 75,65 Q70,80 50,85 Q30,80 20,65 Q15,45 25,30 Z",
    "barcelona": "M20,40 Q35,25 55,30 Q75,35 80,55 Q75,75 55,80 Q35,85 20,70 Q15,50 20,40 Z",
    "gilles-villeneuve": "M15,50 L30,50 Q40,40 50,50 L60,50 Q70,40 80,50 L85,50 Q90,55 85,60 L80,60 Q70,70 60,60 L50,60 Q40,70 30,60 L15,60 Q10,55 15,50 Z",
    "losail": "M20,35 Q40,25 60,35 Q80,45 75,65 Q70,85 50,80 Q30,75 20,60 Q15,45 20,35 Z",
    "portimao": "M25,30 Q45,20 65,30 Q80,45 75,65 Q70,80 50,85 Q30,80 20,65 Q15,45 25,30 Z",
    "jerez": "M20,40 Q35,25 55,30 Q75,35 80,55 Q75,75 55,80 Q35,85 20,70 Q15,50 20,40 Z",
    "lemans": "M15,45 L85,45 Q90,50 85,55 L15,55 Q10,50 15,45 Z",
    "mugello": "M25,35 Q45,25 65,35 Q80,50 75,70 Q70,85 50,80 Q30,75 20,60 Q15,45 25,35 Z",
    "assen": "M20,40 Q30,25 50,30 Q70,35 80,55 Q75,75 55,80 Q35,85 25,70 Q15,55 20,40 Z",
    "sachsenring": "M25,35 Q45,25 65,35 Q80,50 75,70 Q70,85 50,80 Q30,75 20,60 Q15,45 25,35 Z",
    "aragon": "M20,40 Q35,25 55,30 Q75,35 80,55 Q75,75 55,80 Q35,85 20,70 Q15,50 20,40 Z",
    "misano": "M25,35 Q45,25 65,35 Q80,50 75,70 Q70,85 50,80 Q30,75 20,60 Q15,45 25,35 Z",
    "sokol": "M20,35 Q40,25 60,35 Q80,45 75,65 Q70,85 50,80 Q30,75 20,60 Q15,45 20,35 Z",
    "mandalika": "M25,30 Q45,20 65,30 Q80,45 75,65 Q70,80 50,85 Q30,80 20,65 Q15,45 25,30 Z",
    "motegi": "M25,35 Q45,25 65,35 Q80,50 75,70 Q70,85 50,80 Q30,75 20,60 Q15,45 25,35 Z",
    "buriram": "M20,40 Q35,25 55,30 Q75,35 80,55 Q75,75 55,80 Q35,85 20,70 Q15,50 20,40 Z",
    "phillip-island": "M25,35 Q45,25 65,35 Q80,50 75,70 Q70,85 50,80 Q30,75 20,60 Q15,45 25,35 Z",
    "sepang": "M20,35 Q40,25 60,35 Q80,45 75,65 Q70,85 50,80 Q30,75 20,60 Q15,45 20,35 Z",
    "valencia": "M20,40 Q35,25 55,30 Q75,35 80,55 Q75,75 55,80 Q35,85 20,70 Q15,50 20,40 Z",
    "default": "M20,50 Q20,20 50,20 Q80,20 80,50 Q80,80 50,80 Q20,80 20,50",
}


def _build_catalog() -> Dict[str, List[Circuit]]:
    rows = {"f1": _F1, "motogp": _MOTOGP, "f2": _F2, "f3": _F3}
    return {
        category: [
            Circuit(slug=slug, name=name, country=country, latitude=lat, longitude=lon, category=category, track_direction=direction)
            for slug, name, country, lat, lon, direction in entries
        ]
        for category, entries in rows.items()
    }


CIRCUITS: Dict[str, List[Circuit]] = _build_catalog()


def get_circuit_by_slug(slug: str, category: str) -> Optional[Circuit]:
    if not slug or category not in CIRCUITS:
        logger.debug("Invalid circuit lookup: slug=%r category=%r", slug, category)
        return None
    for circuit in CIRCUITS[category]:
        if circuit.slug == slug:
            return circuit
    logger.debug("Circuit %s not found in %s", slug, category)
    return None


def list_circuits(category: Optional[str] = None) -> List[Circuit]:
    if category is not None:
        return list(CIRCUITS.get(category, []))
    return [circuit for circuits in CIRCUITS.values() for circuit in circuits]


def search_circuits(query: str, category: Optional[str] = None) -> List[Circuit]:
    term = (query or "").strip().lower()
    if not term:
        return []
    return [
        circuit
        for circuit in list_circuits(category)
        if term in circuit.name.lower() or term in circuit.country.lower() or term in circuit.slug.lower()
    ]


def layout_for(slug: str) -> str:
    """SVG outline for a circuit; series-specific slugs share the base circuit's layout."""
    if slug in TRACK_LAYOUTS:
        return TRACK_LAYOUTS[slug]
    for suffix in SLUG_SUFFIXES:
        if slug.endswith(suffix) and slug[: -len(suffix)] in TRACK_LAYOUTS:
            return TRACK_LAYOUTS[slug[: -len(suffix)]]
    return TRACK_LAYOUTS["default"]


@lru_cache(maxsize=None)
def _sections(slug: str) -> Tuple[TrackSection, ...]:
    return tuple(sections_from_path(layout_for(slug)))


def track_sections(slug: str) -> List[TrackSection]:
    return list(_sections(slug))


def main_straight_direction(circuit: Circuit) -> Optional[float]:
    """Published main straight heading, else the longest straight of the outline."""
    if circuit.track_direction is not None:
        return circuit.track_direction
    return main_straight_heading(_sections(circuit.slug))
