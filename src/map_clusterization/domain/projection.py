# ============================================================
# 📦 src/map_clusterization/domain/projection.py
# ============================================================
# Web Mercator normalizado: x, y em [0, 1]; y cresce para o sul.

import numpy as np

MAX_LAT = 85.05112878


def lon_to_x(lon):
    return np.asarray(lon, dtype=np.float64) / 360.0 + 0.5


def lat_to_y(lat):
    lat = np.clip(np.asarray(lat, dtype=np.float64), -MAX_LAT, MAX_LAT)
    s = np.sin(np.radians(lat))
    y = 0.5 - 0.25 * np.log((1 + s) / (1 - s)) / np.pi
    return np.clip(y, 0.0, 1.0)


def pixels_to_world(pixels: float, zoom: int, tile_size: int) -> float:
    """Converte uma distância em pixels de tela no zoom dado para unidades projetadas."""
    return float(pixels) / (tile_size * (2 ** zoom))


def x_to_lon(x):
    return (np.asarray(x, dtype=np.float64) - 0.5) * 360.0


def y_to_lat(y):
    y2 = (180.0 - np.asarray(y, dtype=np.float64) * 360.0) * np.pi / 180.0
    return 360.0 * np.arctan(np.exp(y2)) / np.pi - 90.0
