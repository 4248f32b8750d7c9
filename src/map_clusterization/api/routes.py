# ============================================================
# 📦 src/map_clusterization/api/routes.py
# ============================================================

from dataclasses import asdict
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from map_clusterization.api.schemas import (
    ClustersResponse,
    ExpansionZoomResponse,
    LeafOut,
    LoadResult,
    MarkerOut,
    PointsPayload,
    SelectionPayload,
)
from map_clusterization.application.marker_manager import MarkerManager
from map_clusterization.config.settings import (
    load_cluster_settings,
    load_materialization_policy,
    load_timing_settings,
)
from map_clusterization.domain.entities import Bounds, PointRecord
from map_clusterization.domain.spatial_index import ClusterNotFoundError
from map_clusterization.infrastructure.map_widget import HeadlessMapWidget

router = APIRouter()


@lru_cache(maxsize=1)
def get_manager() -> MarkerManager:
    """Manager único do processo (índice em memória)."""
    settings = load_cluster_settings()
    return MarkerManager(
        HeadlessMapWidget(tile_size=settings.tile_size),
        cluster_settings=settings,
        policy=load_materialization_policy(),
        timing=load_timing_settings(),
    )


# ============================================================
# 🧠 Health
# ============================================================
@router.get("/health", tags=["Status"])
def health():
    return {"status": "ok", "message": "Map Clusterization API saudável 🧩"}


# ============================================================
# 📦 Carga do conjunto de pontos
# ============================================================
@router.post("/points", response_model=LoadResult)
def carregar_pontos(payload: PointsPayload, manager: MarkerManager = Depends(get_manager)):
    records = [
        PointRecord(
            id=p.id,
            latitude=float("nan") if p.latitude is None else p.latitude,
            longitude=float("nan") if p.longitude is None else p.longitude,
            name=p.name,
            category=p.category,
            price=p.price,
            attributes=p.attributes,
        )
        for p in payload.points
    ]
    index = manager.load_points(records)
    return LoadResult(recebidos=len(records), indexados=len(index), ignorados=len(records) - len(index))


# ============================================================
# 🗺️ Marcadores do viewport
# ============================================================
@router.get("/clusters", response_model=ClustersResponse)
def listar_clusters(
    west: float = Query(..., ge=-180, le=180),
    south: float = Query(..., ge=-90, le=90),
    east: float = Query(..., ge=-180, le=180),
    north: float = Query(..., ge=-90, le=90),
    zoom: int = Query(..., ge=0, le=30),
    focal_lat: Optional[float] = Query(None, ge=-90, le=90),
    focal_lon: Optional[float] = Query(None, ge=-180, le=180),
    manager: MarkerManager = Depends(get_manager),
):
    # endpoint síncrono roda no threadpool: viewport + refresh sob o mesmo lock
    with manager.lock:
        manager.map_widget.set_viewport(Bounds(west=west, south=south, east=east, north=north), zoom)
        manager.set_focal_point(
            (focal_lat, focal_lon) if focal_lat is not None and focal_lon is not None else None
        )
        markers = manager.refresh()
    return ClustersResponse(
        zoom=zoom,
        total=len(markers),
        markers=[MarkerOut(**asdict(m)) for m in markers],
    )


@router.get("/clusters/{cluster_id}/expansion-zoom", response_model=ExpansionZoomResponse)
def expansion_zoom(cluster_id: int, manager: MarkerManager = Depends(get_manager)):
    try:
        zoom = manager.index.get_expansion_zoom(cluster_id)
    except ClusterNotFoundError:
        logger.warning(f"⚠️ Cluster {cluster_id} não encontrado")
        raise HTTPException(status_code=404, detail=f"Cluster {cluster_id} não encontrado")
    return ExpansionZoomResponse(cluster_id=cluster_id, expansion_zoom=min(zoom, manager.index.max_zoom + 1))


@router.get("/clusters/{cluster_id}/leaves", response_model=List[LeafOut])
def listar_folhas(
    cluster_id: int,
    limit: int = Query(10, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    manager: MarkerManager = Depends(get_manager),
):
    try:
        leaves = manager.index.get_leaves(cluster_id, limit=limit, offset=offset)
    except ClusterNotFoundError:
        raise HTTPException(status_code=404, detail=f"Cluster {cluster_id} não encontrado")
    return [
        LeafOut(id=r.id, latitude=r.latitude, longitude=r.longitude, name=r.name, category=r.category, price=r.price)
        for r in leaves
    ]


# ============================================================
# 🎯 Seleção
# ============================================================
@router.post("/selection")
def selecionar(payload: SelectionPayload, manager: MarkerManager = Depends(get_manager)):
    manager.selection.set_selected(payload.point_id)
    return {"selected_id": manager.selection.selected_id}
