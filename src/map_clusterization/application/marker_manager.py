# ============================================================
# 📦 src/map_clusterization/application/marker_manager.py
# ============================================================

import threading
import time
from typing import Callable, Iterable, List, Optional, Tuple, Union

from loguru import logger

from map_clusterization.application.timers import Debouncer, LoopScheduler, Throttler
from map_clusterization.config.settings import (
    ClusterSettings,
    MaterializationPolicy,
    TimingSettings,
)
from map_clusterization.domain.entities import MapState, MaterializedMarker, PointRecord
from map_clusterization.domain.marker_optimizer import ImportanceKey, materialize
from map_clusterization.domain.selection_state import SelectionStore
from map_clusterization.domain.spatial_index import ClusterNotFoundError, SpatialIndex, build_index
from map_clusterization.domain.viewport_query import query_clusters
from map_clusterization.infrastructure.map_widget import MapWidget
from map_clusterization.infrastructure.performance_monitor import PerformanceMonitor


def parse_cluster_id(cluster_id: Union[int, str]) -> int:
    """Aceita o id numérico ou o id de feature `cluster-<n>`."""
    if isinstance(cluster_id, str) and cluster_id.startswith("cluster-"):
        cluster_id = cluster_id[len("cluster-"):]
    return int(cluster_id)


# ============================================================
# ⚙️ Classe principal
# ============================================================
class MarkerManager:
    """
    Dono do índice espacial, da seleção e dos marcadores no mapa.
    - O índice é trocado por referência (nunca alterado no lugar).
    - Sem widget de mapa (ou widget carregando) todas as operações viram no-op.
    - Re-materialização por pan/zoom é debounced; cliques são throttled.
    - `lock` (reentrante) serializa troca de índice e materialização; hosts
      multi-thread devem segurá-lo ao alterar o viewport antes de `refresh`.
    """

    def __init__(
        self,
        map_widget: Optional[MapWidget],
        cluster_settings: Optional[ClusterSettings] = None,
        policy: Optional[MaterializationPolicy] = None,
        timing: Optional[TimingSettings] = None,
        selection: Optional[SelectionStore] = None,
        scheduler=None,
        clock: Callable[[], float] = time.monotonic,
        on_select: Optional[Callable[[str], None]] = None,
        importance: Optional[ImportanceKey] = None,
        monitor: Optional[PerformanceMonitor] = None,
    ):
        self.map_widget = map_widget
        self.cluster_settings = cluster_settings or ClusterSettings()
        self.policy = policy or MaterializationPolicy()
        self.timing = timing or TimingSettings()
        self.selection = selection or SelectionStore()
        self.on_select = on_select
        self.importance = importance
        self.monitor = monitor or PerformanceMonitor()
        self.lock = threading.RLock()

        self.index: SpatialIndex = build_index([], self.cluster_settings)
        self.focal_point: Optional[Tuple[float, float]] = None
        self.markers: List[MaterializedMarker] = []
        self._handles: list = []

        self._viewport_debouncer = Debouncer(
            self.timing.viewport_debounce_ms, self.refresh, scheduler or LoopScheduler(), nome="viewport"
        )
        self._click_throttle = Throttler(self.timing.click_throttle_ms, clock, nome="clique")

    # ------------------------------------------------------------
    # 🔌 Estado do mapa
    # ------------------------------------------------------------
    def _map_disponivel(self) -> bool:
        return self.map_widget is not None and self.map_widget.is_ready()

    def set_focal_point(self, focal_point: Optional[Tuple[float, float]]):
        self.focal_point = focal_point

    # ------------------------------------------------------------
    # 📦 Carga de dados
    # ------------------------------------------------------------
    def load_points(self, points: Iterable[PointRecord]) -> SpatialIndex:
        """Reconstrói o índice; em caso de falha o mapa fica vazio."""
        try:
            novo = build_index(points, self.cluster_settings)
        except Exception as e:
            logger.error(f"❌ Falha ao reconstruir o índice: exibindo mapa vazio: {e}")
            novo = build_index([], self.cluster_settings)

        with self.lock:
            self.index = novo
            self.selection.clear()
            self.refresh()
        return novo

    # ------------------------------------------------------------
    # 🗺️ Materialização
    # ------------------------------------------------------------
    def current_state(self) -> MapState:
        return MapState(
            bounds=self.map_widget.get_bounds(),
            zoom=int(self.map_widget.get_zoom()),
            focal_point=self.focal_point,
        )

    def refresh(self) -> List[MaterializedMarker]:
        with self.lock:
            return self._materializar()

    def _materializar(self) -> List[MaterializedMarker]:
        if not self._map_disponivel():
            logger.warning("⚠️ Mapa indisponível: materialização ignorada.")
            return []

        stop = self.monitor.start_timing("materialize")
        index = self.index
        state = self.current_state()

        features = query_clusters(index, state.bounds, state.zoom)
        markers = materialize(
            features,
            state,
            self.policy,
            selected_id=self.selection.selected_id,
            hovered_id=self.selection.hovered_id,
            importance=self.importance,
        )

        self._limpar_marcadores()
        for m in markers:
            self._handles.append(
                self.map_widget.add_marker(m, on_click=self._click_handler(m), on_hover=self._hover_handler(m))
            )
        self.markers = markers

        stop()
        logger.info(f"🗺️ {len(markers)} marcadores exibidos de {len(index)} pontos (zoom={state.zoom})")
        return markers

    def _limpar_marcadores(self):
        for handle in self._handles:
            self.map_widget.remove_marker(handle)
        self._handles = []
        self.markers = []

    def _click_handler(self, m: MaterializedMarker):
        if m.is_cluster:
            return lambda: self.on_cluster_click(m.cluster_id)
        return lambda: self.on_point_click(m.id)

    def _hover_handler(self, m: MaterializedMarker):
        if m.is_cluster:
            return None
        return lambda entrando: self.on_point_hover(m.id if entrando else None)

    # ------------------------------------------------------------
    # 🖱️ Eventos
    # ------------------------------------------------------------
    def on_viewport_changed(self):
        self._viewport_debouncer.trigger()

    def on_cluster_click(self, cluster_id: Union[int, str]) -> Optional[int]:
        """Aproxima o mapa até o zoom em que o cluster se divide."""
        if not self._click_throttle.allow():
            return None
        if not self._map_disponivel():
            logger.warning("⚠️ Mapa indisponível: clique no cluster ignorado.")
            return None

        index = self.index
        try:
            cid = parse_cluster_id(cluster_id)
            expansao = index.get_expansion_zoom(cid)
            feature = index.cluster_feature(cid, expansao - 1)
        except (ClusterNotFoundError, ValueError) as e:
            logger.warning(f"⚠️ Clique em cluster obsoleto ignorado ({cluster_id}): {e}")
            return None

        zoom_alvo = min(expansao, index.max_zoom + 1)
        logger.debug(f"🔍 Cluster {cid}: zoom {self.map_widget.get_zoom()} → {zoom_alvo}")
        self.map_widget.set_zoom(zoom_alvo)
        self.map_widget.set_center(feature.latitude, feature.longitude)
        return zoom_alvo

    def on_point_click(self, point_id: str):
        if not self._click_throttle.allow():
            return
        if not self._map_disponivel():
            logger.warning("⚠️ Mapa indisponível: clique no ponto ignorado.")
            return

        logger.debug(f"🎯 Ponto selecionado: {point_id}")
        self.selection.set_selected(point_id)
        if self.on_select:
            self.on_select(point_id)
        self.refresh()

    def on_point_hover(self, point_id: Optional[str]):
        self.selection.set_hovered(point_id)
        self.refresh()

    def dispose(self):
        self._viewport_debouncer.cancel()
        if self.map_widget is not None:
            with self.lock:
                self._limpar_marcadores()
