"""
State Plane (NAD83, US survey feet) to WGS84 conversion for pile northing/easting.
"""

import logging
import math
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from pyproj import CRS, Transformer

logger = logging.getLogger(__name__)

_LCC = "+proj=lcc +lat_1={lat_1} +lat_2={lat_2} +lat_0={lat_0} +lon_0={lon_0} +x_0={x_0} +y_0={y_0}"
_TMERC = "+proj=tmerc +lat_0={lat_0} +lon_0={lon_0} +k={k} +x_0={x_0} +y_0={y_0}"
_COMMON = " +ellps=GRS80 +towgs84=0,0,0,0,0,0,0 +units=us-ft +no_defs"


def _lcc(lat_1, lat_2, lat_0, lon_0, x_0, y_0) -> str:
    return _LCC.format(lat_1=lat_1, lat_2=lat_2, lat_0=lat_0, lon_0=lon_0, x_0=x_0, y_0=y_0) + _COMMON


def _tmerc(lat_0, lon_0, k, x_0, y_0) -> str:
    return _TMERC.format(lat_0=lat_0, lon_0=lon_0, k=k, x_0=x_0, y_0=y_0) + _COMMON


STATE_PLANE_DEFINITIONS: Dict[str, Dict[str, str]] = {
    # Oklahoma
    "EPSG:2267": {"name": "Oklahoma North", "def": _lcc(35.56666666666667, 36.76666666666667, 35, -98, 600000, 0)},
    "EPSG:2268": {"name": "Oklahoma South", "def": _lcc(33.93333333333333, 35.23333333333333, 33.33333333333334, -98, 600000, 0)},
    # Texas
    "EPSG:2275": {"name": "Texas North", "def": _lcc(34.65, 36.18333333333333, 34, -101.5, 200000.0001016002, 999999.9998983998)},
    "EPSG:2276": {"name": "Texas North Central", "def": _lcc(32.13333333333333, 33.96666666666667, 31.66666666666667, -98.5, 600000, 2000000.0001016)},
    "EPSG:2277": {"name": "Texas Central", "def": _lcc(30.11666666666667, 31.88333333333333, 29.66666666666667, -100.3333333333333, 700000.0001016001, 3000000)},
    "EPSG:2278": {"name": "Texas South Central", "def": _lcc(28.38333333333333, 30.28333333333333, 27.83333333333333, -99, 600000, 4000000.0001016)},
    "EPSG:2279": {"name": "Texas South", "def": _lcc(26.16666666666667, 27.83333333333333, 25.66666666666667, -98.5, 300000.0000000001, 5000000.0001016)},
    # California
    "EPSG:2225": {"name": "California Zone 1", "def": _lcc(40, 41.66666666666666, 39.33333333333334, -122, 2000000.0001016, 500000.0001016001)},
    "EPSG:2226": {"name": "California Zone 2", "def": _lcc(38.33333333333334, 39.83333333333334, 37.66666666666666, -122, 2000000.0001016, 500000.0001016001)},
    "EPSG:2227": {"name": "California Zone 3", "def": _lcc(37.06666666666667, 38.43333333333333, 36.5, -120.5, 2000000.0001016, 500000.0001016001)},
    "EPSG:2228": {"name": "California Zone 4", "def": _lcc(36, 37.25, 35.33333333333334, -119, 2000000.0001016, 500000.0001016001)},
    "EPSG:2229": {"name": "California Zone 5", "def": _lcc(34.03333333333333, 35.46666666666667, 33.5, -118, 2000000.0001016, 500000.0001016001)},
    "EPSG:2230": {"name": "California Zone 6", "def": _lcc(32.78333333333333, 33.88333333333333, 32.16666666666666, -116.25, 2000000.0001016, 500000.0001016001)},
    # Florida
    "EPSG:2236": {"name": "Florida East", "def": _tmerc(24.33333333333333, -81, 0.999941177, 200000.0001016002, 0)},
    "EPSG:2237": {"name": "Florida West", "def": _tmerc(24.33333333333333, -82, 0.999941177, 200000.0001016002, 0)},
    "EPSG:2238": {"name": "Florida North", "def": _lcc(29.58333333333333, 30.75, 29, -84.5, 600000, 0)},
    # Arizona
    "EPSG:2222": {"name": "Arizona East", "def": _tmerc(31, -110.1666666666667, 0.9999, 213360, 0)},
    "EPSG:2223": {"name": "Arizona Central", "def": _tmerc(31, -111.9166666666667, 0.9999, 213360, 0)},
    "EPSG:2224": {"name": "Arizona West", "def": _tmerc(31, -113.75, 0.999933333, 213360, 0)},
    # Colorado
    "EPSG:2231": {"name": "Colorado North", "def": _lcc(39.71666666666667, 40.78333333333333, 39.33333333333334, -105.5, 914401.8288036576, 304800.6096012192)},
    "EPSG:2232": {"name": "Colorado Central", "def": _lcc(38.45, 39.75, 37.83333333333334, -105.5, 914401.8288036576, 304800.6096012192)},
    "EPSG:2233": {"name": "Colorado South", "def": _lcc(37.23333333333333, 38.43333333333333, 36.66666666666666, -105.5, 914401.8288036576, 304800.6096012192)},
    # Georgia
    "EPSG:2239": {"name": "Georgia East", "def": _tmerc(30, -82.16666666666667, 0.9999, 200000.0001016002, 0)},
    "EPSG:2240": {"name": "Georgia West", "def": _tmerc(30, -84.16666666666667, 0.9999, 700000.0001016001, 0)},
    # North Carolina
    "EPSG:2264": {"name": "North Carolina", "def": _lcc(34.33333333333334, 36.16666666666666, 33.75, -79, 609601.2192024384, 0)},
    # Virginia
    "EPSG:2283": {"name": "Virginia North", "def": _lcc(38.03333333333333, 39.2, 37.66666666666666, -78.5, 3500000.0001016, 2000000.0001016)},
    "EPSG:2284": {"name": "Virginia South", "def": _lcc(36.76666666666667, 37.96666666666667, 36.33333333333334, -78.5, 3500000.0001016, 1000000)},
    # Nevada
    "EPSG:2258": {"name": "Nevada East", "def": _tmerc(34.75, -115.5833333333333, 0.9999, 200000.00001016, 8000000.000010163)},
    "EPSG:2259": {"name": "Nevada Central", "def": _tmerc(34.75, -116.6666666666667, 0.9999, 500000.00001016, 6000000.000010163)},
    "EPSG:2260": {"name": "Nevada West", "def": _tmerc(34.75, -118.5833333333333, 0.9999, 800000.0000101599, 4000000.000010163)},
}

# (state, (min_lat, max_lat, min_lng, max_lng), [(code, lat_boundary), ...]) zones ordered north to south
STATE_ZONES: List[Tuple[str, Tuple[float, float, float, float], List[Tuple[str, Optional[float]]]]] = [
    ("Oklahoma", (33.6, 37.0, -103.0, -94.4), [("EPSG:2267", 35.4), ("EPSG:2268", None)]),
    ("Texas", (25.8, 36.5, -106.6, -93.5), [
        ("EPSG:2275", 34.5), ("EPSG:2276", 32.0), ("EPSG:2277", 30.0), ("EPSG:2278", 28.0), ("EPSG:2279", None)
    ]),
    ("California", (32.5, 42.0, -124.4, -114.1), [
        ("EPSG:2225", 40.0), ("EPSG:2226", 38.5), ("EPSG:2227", 37.0),
        ("EPSG:2228", 35.5), ("EPSG:2229", 34.0), ("EPSG:2230", None)
    ]),
    ("Florida", (24.5, 31.0, -87.6, -80.0), [("EPSG:2238", 29.5), ("EPSG:2236", None), ("EPSG:2237", None)]),
    ("Arizona", (31.3, 37.0, -114.8, -109.0), [("EPSG:2222", None), ("EPSG:2223", None), ("EPSG:2224", None)]),
    ("Colorado", (37.0, 41.0, -109.0, -102.0), [("EPSG:2231", 39.6), ("EPSG:2232", 38.3), ("EPSG:2233", None)]),
    ("Georgia", (30.4, 35.0, -85.6, -80.8), [("EPSG:2239", None), ("EPSG:2240", None)]),
    ("North Carolina", (33.8, 36.6, -84.3, -75.5), [("EPSG:2264", None)]),
    ("Virginia", (36.5, 39.5, -83.7, -75.2), [("EPSG:2283", 38.0), ("EPSG:2284", None)]),
    ("Nevada", (35.0, 42.0, -120.0, -114.0), [("EPSG:2258", None), ("EPSG:2259", None), ("EPSG:2260", None)]),
]

# Rough continental US box used to flag suspicious conversions
US_BOUNDS = (24.0, 50.0, -125.0, -66.0)


def normalize_code(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    code = str(code).strip().upper()
    return code if code.startswith("EPSG:") else f"EPSG:{code}"


def is_supported(code: Optional[str]) -> bool:
    return normalize_code(code) in STATE_PLANE_DEFINITIONS


def get_coordinate_system_name(code: Optional[str]) -> Optional[str]:
    definition = STATE_PLANE_DEFINITIONS.get(normalize_code(code))
    return definition["name"] if definition else None


def list_coordinate_systems() -> List[Dict[str, str]]:
    """[{code, name}] sorted by name"""
    systems = [{"code": code, "name": d["name"]} for code, d in STATE_PLANE_DEFINITIONS.items()]
    return sorted(systems, key=lambda s: s["name"])


@lru_cache(maxsize=None)
def _transformer(code: str) -> Transformer:
    source = CRS.from_proj4(STATE_PLANE_DEFINITIONS[code]["def"])
    return Transformer.from_crs(source, CRS.from_epsg(4326), always_xy=True)


def convert_to_lat_lng(easting: float, northing: float, code: str) -> Optional[Dict[str, float]]:
    """{lat, lng} for a State Plane point, or None when the zone is unknown or the transform fails"""
    code = normalize_code(code)
    if code not in STATE_PLANE_DEFINITIONS:
        logger.error(f"Unknown EPSG code: {code}")
        return None
    try:
        lng, lat = _transformer(code).transform(float(easting), float(northing))
    except Exception as e:
        logger.error(f"Error converting coordinates ({easting}, {northing}) in {code}: {e}")
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        logger.error(f"Conversion produced no finite result for ({easting}, {northing}) in {code}")
        return None
    min_lat, max_lat, min_lng, max_lng = US_BOUNDS
    if lat < min_lat or lat > max_lat or lng < min_lng or lng > max_lng:
        logger.warning(f"Converted coordinates seem outside continental US: lat={lat}, lng={lng}")
    return {"lat": lat, "lng": lng}


def convert_batch(points: Iterable[Dict[str, float]], code: str) -> List[Optional[Dict[str, float]]]:
    """Convert [{easting, northing}]; failed entries are None"""
    return [convert_to_lat_lng(p["easting"], p["northing"], code) for p in points]


def get_center(points: Iterable[Optional[Dict[str, float]]]) -> Optional[Dict[str, float]]:
    valid = [p for p in points if p]
    if not valid:
        return None
    return {
        "lat": sum(p["lat"] for p in valid) / len(valid),
        "lng": sum(p["lng"] for p in valid) / len(valid)
    }


def detect_state_plane_zone(lat: float, lng: float) -> Optional[str]:
    """Most likely State Plane zone for a project location, or None outside the supported states"""
    for state, (min_lat, max_lat, min_lng, max_lng), zones in STATE_ZONES:
        if min_lat <= lat <= max_lat and min_lng <= lng <= max_lng:
            for code, boundary in zones:
                if boundary is None or lat >= boundary:
                    return code
            return zones[-1][0]
    logger.warning(f"Could not determine state for coordinates: lat={lat}, lng={lng}")
    return None
