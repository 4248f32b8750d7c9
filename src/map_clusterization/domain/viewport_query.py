# ============================================================
# 📦 src/map_clusterization/domain/viewport_query.py
# ============================================================

from typing import List

from loguru import logger

from map_clusterization.domain.entities import Bounds, Feature
from map_clusterization.domain.projection import lat_to_y, lon_to_x
from map_clusterization.domain.spatial_index import SpatialIndex


def normalize_bounds(bounds: Bounds) -> Bounds:
    """
    Bbox invertido (south > north ou west > east) é tratado como erro do
    chamador e normalizado trocando os limites. Coordenadas são limitadas
    às faixas válidas.
    """
    west, south, east, north = bounds.as_bbox()

    if south > north:
        logger.warning(f"⚠️ Bbox com south > north ({south} > {north}), limites trocados.")
        south, north = north, south
    if west > east:
        logger.warning(f"⚠️ Bbox com west > east ({west} > {east}), limites trocados.")
        west, east = east, west

    return Bounds(
        west=max(-180.0, min(180.0, west)),
        south=max(-90.0, min(90.0, south)),
        east=max(-180.0, min(180.0, east)),
        north=max(-90.0, min(90.0, north)),
    )


def query_clusters(index: SpatialIndex, bounds: Bounds, zoom: int) -> List[Feature]:
    """
    Retorna os clusters/pontos visíveis no bbox para o zoom dado.

    Uma feature entra no resultado quando pelo menos um de seus membros está
    no bbox expandido por `padding_ratio` (fração da largura/altura projetada).
    Cada ponto do bbox expandido aparece em exatamente uma feature.
    Ordem: menor rank de cada feature.
    """
    if isinstance(zoom, bool) or int(zoom) != zoom or zoom < 0:
        raise ValueError(f"❌ Zoom inválido: {zoom!r} (esperado inteiro >= 0)")
    zoom = int(zoom)

    if index.is_empty:
        return []

    b = normalize_bounds(bounds)
    x0, x1 = float(lon_to_x(b.west)), float(lon_to_x(b.east))
    # y cresce para o sul
    y0, y1 = float(lat_to_y(b.north)), float(lat_to_y(b.south))

    ratio = index.settings.padding_ratio
    pad_x, pad_y = (x1 - x0) * ratio, (y1 - y0) * ratio
    x0, x1 = max(0.0, x0 - pad_x), min(1.0, x1 + pad_x)
    y0, y1 = max(0.0, y0 - pad_y), min(1.0, y1 + pad_y)

    ranks = index.ranks_in_box(x0, y0, x1, y1)
    if not len(ranks):
        logger.debug(f"📭 Nenhum ponto no bbox {b.as_bbox()} (zoom={zoom})")
        return []

    features = index.features_for_ranks(ranks, zoom)
    logger.debug(
        f"📍 Consulta zoom={zoom} (nível {index.level_zoom(zoom)}): "
        f"{len(ranks)} pontos → {len(features)} features"
    )
    return features


def get_expansion_zoom(index: SpatialIndex, cluster_id: int) -> int:
    return index.get_expansion_zoom(cluster_id)
