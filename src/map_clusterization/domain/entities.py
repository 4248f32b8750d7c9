# ==========================================================
# 📦 src/map_clusterization/domain/entities.py
# ==========================================================

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple, Union


@dataclass(frozen=True)
class PointRecord:
    """Representa um imóvel comercial vago (um ponto no mapa)."""
    id: str
    latitude: float
    longitude: float

    # 🔹 Atributos de exibição (não interpretados pela clusterização)
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    attributes: Dict[str, Any] = field(default_factory=dict)


# ==========================================================
# 🗺️ Viewport
# ==========================================================
@dataclass(frozen=True)
class Bounds:
    west: float
    south: float
    east: float
    north: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east

    def as_bbox(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)


@dataclass(frozen=True)
class MapState:
    bounds: Bounds
    zoom: int
    focal_point: Optional[Tuple[float, float]] = None   # (lat, lon)


# ==========================================================
# 🧩 Resultado de consulta (transiente)
# ==========================================================
@dataclass(frozen=True)
class ClusterFeature:
    """
    Cluster retornado por uma consulta.
    - cluster_id: id numérico interno do índice
    - latitude/longitude: média aritmética das coordenadas dos membros
    """
    cluster_id: int
    latitude: float
    longitude: float
    point_count: int
    zoom: int

    is_cluster = True

    @property
    def id(self) -> str:
        return f"cluster-{self.cluster_id}"


@dataclass(frozen=True)
class PointFeature:
    record: PointRecord

    is_cluster = False

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def latitude(self) -> float:
        return self.record.latitude

    @property
    def longitude(self) -> float:
        return self.record.longitude


Feature = Union[ClusterFeature, PointFeature]


# ==========================================================
# 📍 Marcador materializado (entregue ao renderizador)
# ==========================================================
@dataclass(frozen=True)
class MaterializedMarker:
    id: str
    kind: str                       # "cluster" | "point"
    latitude: float
    longitude: float
    click_target: str
    size: Tuple[int, int]
    anchor: Tuple[int, int]
    z_index: int

    # 🔹 Clusters
    cluster_id: Optional[int] = None
    point_count: Optional[int] = None
    tier: Optional[str] = None
    color: Optional[str] = None
    label: Optional[str] = None

    # 🔹 Pontos
    icon: Optional[str] = None
    category: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    is_selected: bool = False
    is_hovered: bool = False

    @property
    def is_cluster(self) -> bool:
        return self.kind == "cluster"
