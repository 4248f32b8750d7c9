# ============================================================
# 📦 src/map_clusterization/application/map_session.py
# ============================================================

from typing import Iterable, List, Optional

from loguru import logger

from map_clusterization.application.marker_manager import MarkerManager
from map_clusterization.application.timers import Debouncer, LoopScheduler
from map_clusterization.config.settings import TimingSettings
from map_clusterization.domain.entities import PointRecord

VIEWPORT_EVENTS = ("bounds_changed", "zoom_changed")


class MapSession:
    """
    Liga o widget de mapa ao MarkerManager.
    - Eventos de viewport → on_viewport_changed (debounce no manager)
    - Recarga por filtro → debounce próprio antes de load_points
    """

    def __init__(self, manager: MarkerManager, timing: Optional[TimingSettings] = None, scheduler=None):
        self.manager = manager
        self.timing = timing or manager.timing
        self._reload = Debouncer(
            self.timing.reload_debounce_ms,
            manager.load_points,
            scheduler or LoopScheduler(),
            nome="recarga",
        )
        self._listeners: List = []

        widget = manager.map_widget
        if widget is None:
            logger.warning("⚠️ Sessão criada sem widget de mapa: eventos de viewport desativados.")
            return
        for event in VIEWPORT_EVENTS:
            self._listeners.append(widget.add_listener(event, manager.on_viewport_changed))

    @property
    def reload_pending(self) -> bool:
        return self._reload.pending

    def apply_filter(self, points: Iterable[PointRecord]):
        """Agenda a troca do conjunto de pontos (filtros mudando em sequência colapsam)."""
        self._reload.trigger(list(points))

    def close(self):
        self._reload.cancel()
        widget = self.manager.map_widget
        if widget is not None:
            for handle in self._listeners:
                widget.remove_listener(handle)
        self._listeners = []
        self.manager.dispose()
