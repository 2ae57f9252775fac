import math
from typing import List, Sequence

import numpy as np

EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate haversine distance between two points in kilometers"""
    lat1_rad = math.radians(lat1)
    lon1_rad = math.radians(lon1)
    lat2_rad = math.radians(lat2)
    lon2_rad = math.radians(lon2)
    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad
    a = (math.sin(dlat/2)**2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon/2)**2)
    c = 2 * math.asin(math.sqrt(a))
    return EARTH_RADIUS_KM * c



def vectorized_haversine(lat1, lon1, lat2, lon2):
    """Vectorized haversine distance in kilometers; inputs broadcast like numpy arrays"""
    lat1, lon1, lat2, lon2 = map(np.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = np.sin(dlat/2)**2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon/2)**2
    c = 2 * np.arcsin(np.sqrt(a))

    return EARTH_RADIUS_KM * c


def distances_from(point, others: Sequence) -> np.ndarray:
    """Distances (km) from one point to each of ``others``"""
    if not others:
        return np.zeros(0)
    lats = np.array([o.lat for o in others], dtype=float)
    lons = np.array([o.lon for o in others], dtype=float)
    return vectorized_haversine(point.lat, point.lon, lats, lons)


def distance_matrix(sources: Sequence, targets: Sequence) -> np.ndarray:
    """Matrix of distances (km) where ``[i, j]`` is sources[i] -> targets[j]"""
    if not sources or not targets:
        return np.zeros((len(sources), len(targets)))
    src_lat = np.array([s.lat for s in sources], dtype=float)[:, None]
    src_lon = np.array([s.lon for s in sources], dtype=float)[:, None]
    dst_lat = np.array([t.lat for t in targets], dtype=float)[None, :]
    dst_lon = np.array([t.lon for t in targets], dtype=float)[None, :]
    return vectorized_haversine(src_lat, src_lon, dst_lat, dst_lon)


def straight_line(start, end) -> List:
    """Two-point fallback geometry between a leg's endpoints"""
    return [start, end]



def coordinate_label(point) -> str:
    """``"lat, lon"`` text used when a point has no better name"""
    return f"{point.lat:.4f}, {point.lon:.4f}"
