# ============================================================
# 📦 src/map_clusterization/api/schemas.py
# ============================================================

import math
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

MarkerKind = Literal["cluster", "point"]


class PointIn(BaseModel):
    id: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("price")
    @classmethod
    def preco_finito(cls, v: Optional[float]) -> Optional[float]:
        # NaN / Infinity contam como preço não informado
        if v is None or not math.isfinite(v):
            return None
        return v


class PointsPayload(BaseModel):
    points: List[PointIn]


class LoadResult(BaseModel):
    recebidos: int
    indexados: int
    ignorados: int


class SelectionPayload(BaseModel):
    point_id: Optional[str] = None


class MarkerOut(BaseModel):
    id: str
    kind: MarkerKind
    latitude: float
    longitude: float
    click_target: str
    size: Tuple[int, int]
    anchor: Tuple[int, int]
    z_index: int
    cluster_id: Optional[int] = None
    point_count: Optional[int] = None
    tier: Optional[str] = None
    color: Optional[str] = None
    label: Optional[str] = None
    icon: Optional[str] = None
    category: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    is_selected: bool = False
    is_hovered: bool = False


class ClustersResponse(BaseModel):
    zoom: int
    total: int
    markers: List[MarkerOut]


class ExpansionZoomResponse(BaseModel):
    cluster_id: int
    expansion_zoom: int


class LeafOut(BaseModel):
    id: str
    latitude: float
    longitude: float
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
