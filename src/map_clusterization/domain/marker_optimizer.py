# ============================================================
# 📦 src/map_clusterization/domain/marker_optimizer.py
# ============================================================

import math
from typing import Callable, List, Optional, Sequence, Tuple

from loguru import logger

from map_clusterization.config.map_defaults import (
    CATEGORY_ICONS,
    CLUSTER_TIERS,
    POINT_ICON_SIZES,
    Z_INDEX_EMPHASIS,
    Z_INDEX_POINT,
)
from map_clusterization.config.settings import MaterializationPolicy
from map_clusterization.domain.entities import (
    Bounds,
    ClusterFeature,
    Feature,
    MapState,
    MaterializedMarker,
    PointFeature,
    PointRecord,
)
from map_clusterization.domain.haversine_utils import haversine_vetorizado
from map_clusterization.domain.viewport_query import normalize_bounds

ImportanceKey = Callable[[PointRecord], Optional[float]]


def _importancia_valida(valor) -> Optional[float]:
    """NaN, infinito ou não numérico contam como ausente."""
    if valor is None:
        return None
    try:
        valor = float(valor)
    except (TypeError, ValueError):
        return None
    return valor if math.isfinite(valor) else None


def importance_by_attr(attr: str) -> ImportanceKey:
    """Importância lida de um campo do registro (ou de `attributes`)."""
    def _key(record: PointRecord) -> Optional[float]:
        valor = getattr(record, attr, None)
        if valor is None:
            valor = record.attributes.get(attr)
        return _importancia_valida(valor)
    return _key


def _separar(features: Sequence[Feature]) -> Tuple[List[ClusterFeature], List[PointFeature]]:
    clusters = [f for f in features if f.is_cluster]
    pontos = [f for f in features if not f.is_cluster]
    return clusters, pontos


# ============================================================
# 1️⃣ Interseção com o viewport
# ============================================================
def filter_by_bounds(features: Sequence[Feature], bounds: Bounds) -> List[Feature]:
    """Remove pontos fora do bbox e clusters cujo centróide (posição do marcador) está fora."""
    b = normalize_bounds(bounds)
    return [f for f in features if b.contains(f.latitude, f.longitude)]


# ============================================================
# 2️⃣ Limite por zoom (pontos mais importantes)
# ============================================================
def cap_by_zoom(
    pontos: Sequence[PointFeature],
    zoom: int,
    policy: MaterializationPolicy,
    importance: Optional[ImportanceKey] = None,
) -> List[PointFeature]:
    """
    Abaixo de `min_zoom_threshold`, com mais de `max_markers` pontos, mantém
    apenas os floor(max_markers / 3) mais importantes. Empates por id; valores
    ausentes por último.
    """
    if zoom >= policy.min_zoom_threshold or len(pontos) <= policy.max_markers:
        return list(pontos)

    key = importance or importance_by_attr(policy.importance_attr)

    def _ordem(f: PointFeature):
        valor = _importancia_valida(key(f.record))
        return (valor is None, -(valor or 0.0), f.id)

    limite = policy.max_markers // 3
    mantidos = sorted(pontos, key=_ordem)[:limite]
    logger.debug(
        f"✂️ Zoom {zoom} < {policy.min_zoom_threshold}: {len(pontos)} pontos → {len(mantidos)} "
        f"(por {policy.importance_attr if importance is None else 'chave customizada'})"
    )
    return mantidos


# ============================================================
# 3️⃣ Prioridade por distância ao ponto focal
# ============================================================
def prioritize_by_distance(
    clusters: Sequence[ClusterFeature],
    pontos: Sequence[PointFeature],
    focal_point: Tuple[float, float],
    max_markers: int,
) -> Tuple[List[ClusterFeature], List[PointFeature]]:
    """
    Ordena os pontos pela distância haversine (km) ao ponto focal e limita o
    total de marcadores a `max_markers`. Clusters ocupam as primeiras vagas.
    """
    clusters = list(clusters)[:max_markers]
    vagas = max(0, max_markers - len(clusters))
    if not pontos:
        return clusters, []

    dist = haversine_vetorizado(
        focal_point,
        [p.latitude for p in pontos],
        [p.longitude for p in pontos],
    )
    ordem = sorted(range(len(pontos)), key=lambda i: (float(dist[i]), pontos[i].id))
    return clusters, [pontos[i] for i in ordem[:vagas]]


# ============================================================
# 4️⃣ Atributos de renderização
# ============================================================
def cluster_tier(point_count: int) -> Tuple[str, int, str]:
    for limite, tier, tamanho, cor in CLUSTER_TIERS:
        if limite is None or point_count < limite:
            return tier, tamanho, cor
    raise ValueError(f"Sem tier para {point_count} pontos")


def _marcador_cluster(f: ClusterFeature) -> MaterializedMarker:
    tier, tamanho, cor = cluster_tier(f.point_count)
    return MaterializedMarker(
        id=f.id,
        kind="cluster",
        latitude=f.latitude,
        longitude=f.longitude,
        click_target=f.id,
        size=(tamanho, tamanho),
        anchor=(tamanho // 2, tamanho // 2),
        z_index=Z_INDEX_EMPHASIS,
        cluster_id=f.cluster_id,
        point_count=f.point_count,
        tier=tier,
        color=cor,
        label=str(f.point_count),
    )


def _marcador_ponto(f: PointFeature, selected_id: Optional[str], hovered_id: Optional[str]) -> MaterializedMarker:
    r = f.record
    selecionado = selected_id is not None and r.id == selected_id
    hover = hovered_id is not None and r.id == hovered_id

    if selecionado:
        largura, altura = POINT_ICON_SIZES["selected"]
    elif hover:
        largura, altura = POINT_ICON_SIZES["hovered"]
    else:
        largura, altura = POINT_ICON_SIZES["default"]

    return MaterializedMarker(
        id=r.id,
        kind="point",
        latitude=r.latitude,
        longitude=r.longitude,
        click_target=r.id,
        size=(largura, altura),
        anchor=(largura // 2, altura),
        z_index=Z_INDEX_EMPHASIS if selecionado else Z_INDEX_POINT,
        icon=CATEGORY_ICONS.get(r.category or "etc", CATEGORY_ICONS["etc"]),
        category=r.category,
        name=r.name,
        price=r.price,
        is_selected=selecionado,
        is_hovered=hover,
    )


# ============================================================
# 🚀 Pipeline completo
# ============================================================
def materialize(
    features: Sequence[Feature],
    map_state: MapState,
    policy: Optional[MaterializationPolicy] = None,
    selected_id: Optional[str] = None,
    hovered_id: Optional[str] = None,
    importance: Optional[ImportanceKey] = None,
) -> List[MaterializedMarker]:
    """
    Aplica, nesta ordem: viewport → limite por zoom → distância ao ponto
    focal → atributos de renderização. Função pura: mesmas entradas, mesma saída.
    Saída: clusters primeiro, depois pontos.
    """
    policy = policy or MaterializationPolicy()

    visiveis = filter_by_bounds(features, map_state.bounds)
    clusters, pontos = _separar(visiveis)

    pontos = cap_by_zoom(pontos, map_state.zoom, policy, importance)

    if map_state.focal_point is not None:
        clusters, pontos = prioritize_by_distance(clusters, pontos, map_state.focal_point, policy.max_markers)

    marcadores = [_marcador_cluster(c) for c in clusters]
    marcadores += [_marcador_ponto(p, selected_id, hovered_id) for p in pontos]

    logger.debug(
        f"🎯 Materialização: {len(features)} features → {len(marcadores)} marcadores "
        f"({len(clusters)} clusters, {len(pontos)} pontos) | zoom={map_state.zoom}"
    )
    return marcadores
