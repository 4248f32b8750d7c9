# ============================================================
# 📦 src/map_clusterization/domain/haversine_utils.py
# ============================================================

import numpy as np

R_TERRA_KM = 6371.0  # raio médio da Terra em km


def haversine_vetorizado(origem, lats, lons) -> np.ndarray:
    """Distâncias (km) de `origem` (lat, lon) para arrays de latitudes/longitudes."""
    lat0, lon0 = np.radians(origem[0]), np.radians(origem[1])
    lats = np.radians(np.asarray(lats, dtype=np.float64))
    lons = np.radians(np.asarray(lons, dtype=np.float64))

    dlat = lats - lat0
    dlon = lons - lon0
    a = np.sin(dlat / 2) ** 2 + np.cos(lat0) * np.cos(lats) * np.sin(dlon / 2) ** 2
    return 2 * R_TERRA_KM * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))
