# ============================================================
# 📦 src/map_clusterization/config/settings.py
# ============================================================

import os
from dataclasses import dataclass


def _env_int(nome: str, padrao: int) -> int:
    valor = os.getenv(nome)
    if valor is None or not valor.strip():
        return padrao
    try:
        return int(valor)
    except ValueError:
        raise ValueError(f"❌ {nome} inválido: {valor!r} (esperado inteiro)")


def _env_float(nome: str, padrao: float) -> float:
    valor = os.getenv(nome)
    if valor is None or not valor.strip():
        return padrao
    try:
        return float(valor)
    except ValueError:
        raise ValueError(f"❌ {nome} inválido: {valor!r} (esperado número)")


# ============================================================
# 🧩 Clusterização (índice espacial)
# ============================================================
@dataclass(frozen=True)
class ClusterSettings:
    """
    Parâmetros do índice hierárquico.
    - radius: raio de agrupamento em pixels de tela
    - min_points: tamanho mínimo de um cluster
    - min_zoom / max_zoom: faixa de zoom em que há clusterização
    - tile_size: pixels por tile no zoom 0 (Web Mercator)
    - padding_ratio: margem do bbox nas consultas, como fração da largura/altura
      (independe do zoom: o mesmo bbox cobre os mesmos pontos em todo zoom)
    """
    radius: float = 80.0
    min_points: int = 2
    min_zoom: int = 0
    max_zoom: int = 16
    tile_size: int = 256
    padding_ratio: float = 0.05

    def __post_init__(self):
        if self.radius <= 0:
            raise ValueError(f"❌ radius deve ser > 0 (recebido {self.radius})")
        if self.min_points < 2:
            raise ValueError(f"❌ min_points deve ser >= 2 (recebido {self.min_points})")
        if self.min_zoom < 0 or self.max_zoom < self.min_zoom:
            raise ValueError(f"❌ Faixa de zoom inválida: [{self.min_zoom}, {self.max_zoom}]")
        # o zoom de formação é codificado em 5 bits no id do cluster
        if self.max_zoom > 30:
            raise ValueError(f"❌ max_zoom deve ser <= 30 (recebido {self.max_zoom})")
        if self.tile_size <= 0:
            raise ValueError(f"❌ tile_size deve ser > 0 (recebido {self.tile_size})")
        if self.padding_ratio < 0:
            raise ValueError(f"❌ padding_ratio deve ser >= 0 (recebido {self.padding_ratio})")


# ============================================================
# 🎯 Política de materialização
# ============================================================
@dataclass(frozen=True)
class MaterializationPolicy:
    max_markers: int = 500
    min_zoom_threshold: int = 10
    importance_attr: str = "price"

    def __post_init__(self):
        if self.max_markers < 1:
            raise ValueError(f"❌ max_markers deve ser >= 1 (recebido {self.max_markers})")


# ============================================================
# ⏱️ Debounce / throttle (ms)
# ============================================================
@dataclass(frozen=True)
class TimingSettings:
    viewport_debounce_ms: int = 300
    click_throttle_ms: int = 200
    reload_debounce_ms: int = 500

    def __post_init__(self):
        for nome in ("viewport_debounce_ms", "click_throttle_ms", "reload_debounce_ms"):
            if getattr(self, nome) < 0:
                raise ValueError(f"❌ {nome} deve ser >= 0")


def load_cluster_settings() -> ClusterSettings:
    return ClusterSettings(
        radius=_env_float("MAPCLUSTER_RADIUS", 80.0),
        min_points=_env_int("MAPCLUSTER_MIN_POINTS", 2),
        min_zoom=_env_int("MAPCLUSTER_MIN_ZOOM", 0),
        max_zoom=_env_int("MAPCLUSTER_MAX_ZOOM", 16),
        tile_size=_env_int("MAPCLUSTER_TILE_SIZE", 256),
        padding_ratio=_env_float("MAPCLUSTER_PADDING_RATIO", 0.05),
    )


def load_materialization_policy() -> MaterializationPolicy:
    return MaterializationPolicy(
        max_markers=_env_int("MAPCLUSTER_MAX_MARKERS", 500),
        min_zoom_threshold=_env_int("MAPCLUSTER_MIN_ZOOM_THRESHOLD", 10),
    )


def load_timing_settings() -> TimingSettings:
    return TimingSettings(
        viewport_debounce_ms=_env_int("MAPCLUSTER_VIEWPORT_DEBOUNCE_MS", 300),
        click_throttle_ms=_env_int("MAPCLUSTER_CLICK_THROTTLE_MS", 200),
        reload_debounce_ms=_env_int("MAPCLUSTER_RELOAD_DEBOUNCE_MS", 500),
    )
