# ============================================================
# 📦 src/map_clusterization/infrastructure/map_widget.py
# ============================================================

import itertools
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from map_clusterization.config.map_defaults import DEFAULT_MAP_CENTER, DEFAULT_ZOOM
from map_clusterization.domain.entities import Bounds, MaterializedMarker
from map_clusterization.domain.projection import lat_to_y, lon_to_x, x_to_lon, y_to_lat

MAP_EVENTS = ("bounds_changed", "zoom_changed", "center_changed")


class MapWidget:
    """
    Interface do widget de mapa injetada no MarkerManager.
    Implementações reais (SDK do mapa no front) ficam fora deste pacote.
    """

    def is_ready(self) -> bool:
        raise NotImplementedError

    def get_bounds(self) -> Bounds:
        raise NotImplementedError

    def get_zoom(self) -> int:
        raise NotImplementedError

    def set_center(self, lat: float, lon: float):
        raise NotImplementedError

    def set_zoom(self, zoom: int):
        raise NotImplementedError

    def add_marker(
        self,
        marker: MaterializedMarker,
        on_click: Optional[Callable[[], None]] = None,
        on_hover: Optional[Callable[[bool], None]] = None,
    ) -> Any:
        raise NotImplementedError

    def remove_marker(self, handle: Any):
        raise NotImplementedError

    def add_listener(self, event: str, callback: Callable[[], None]) -> Any:
        raise NotImplementedError

    def remove_listener(self, handle: Any):
        raise NotImplementedError


# ============================================================
# 🧪 Widget em memória (CLI, API e testes)
# ============================================================
class HeadlessMapWidget(MapWidget):
    """
    Mapa sem renderização: viewport em pixels + centro + zoom, com registro
    dos comandos recebidos e simulação de cliques/hover.
    """

    def __init__(
        self,
        center: Tuple[float, float] = (DEFAULT_MAP_CENTER["lat"], DEFAULT_MAP_CENTER["lon"]),
        zoom: int = DEFAULT_ZOOM,
        width_px: int = 1024,
        height_px: int = 768,
        tile_size: int = 256,
        ready: bool = True,
    ):
        self.center = center
        self.zoom = int(zoom)
        self.width_px = width_px
        self.height_px = height_px
        self.tile_size = tile_size
        self.ready = ready

        self.commands: List[Tuple] = []
        self.markers: Dict[int, Tuple[MaterializedMarker, Optional[Callable], Optional[Callable]]] = {}
        self._listeners: Dict[int, Tuple[str, Callable[[], None]]] = {}
        self._handles = itertools.count(1)
        self._bounds_override: Optional[Bounds] = None

    # ------------------------------------------------------------
    # 📐 Estado
    # ------------------------------------------------------------
    def is_ready(self) -> bool:
        return self.ready

    def get_bounds(self) -> Bounds:
        if self._bounds_override is not None:
            return self._bounds_override

        escala = self.tile_size * (2 ** self.zoom)
        cx = float(lon_to_x(self.center[1]))
        cy = float(lat_to_y(self.center[0]))
        dx = self.width_px / 2.0 / escala
        dy = self.height_px / 2.0 / escala
        return Bounds(
            west=float(x_to_lon(max(0.0, cx - dx))),
            south=float(y_to_lat(min(1.0, cy + dy))),
            east=float(x_to_lon(min(1.0, cx + dx))),
            north=float(y_to_lat(max(0.0, cy - dy))),
        )

    def get_zoom(self) -> int:
        return self.zoom

    # ------------------------------------------------------------
    # 🧭 Comandos
    # ------------------------------------------------------------
    def set_center(self, lat: float, lon: float):
        self.commands.append(("set_center", lat, lon))
        self.center = (lat, lon)
        self._bounds_override = None
        self._emit("center_changed")
        self._emit("bounds_changed")

    def set_zoom(self, zoom: int):
        self.commands.append(("set_zoom", int(zoom)))
        self.zoom = int(zoom)
        self._bounds_override = None
        self._emit("zoom_changed")
        self._emit("bounds_changed")

    def set_viewport(self, bounds: Bounds, zoom: int):
        """Simula um pan/zoom do usuário com bbox explícito."""
        self._bounds_override = bounds
        self.center = ((bounds.south + bounds.north) / 2.0, (bounds.west + bounds.east) / 2.0)
        self.zoom = int(zoom)
        self._emit("bounds_changed")

    # ------------------------------------------------------------
    # 📍 Marcadores
    # ------------------------------------------------------------
    def add_marker(self, marker, on_click=None, on_hover=None):
        handle = next(self._handles)
        self.markers[handle] = (marker, on_click, on_hover)
        return handle

    def remove_marker(self, handle):
        self.markers.pop(handle, None)

    def visible_markers(self) -> List[MaterializedMarker]:
        return [m for m, _, _ in self.markers.values()]

    def _por_id(self, marker_id: str):
        for marker, on_click, on_hover in self.markers.values():
            if marker.id == marker_id:
                return marker, on_click, on_hover
        raise KeyError(f"Marcador {marker_id} não está no mapa")

    def click(self, marker_id: str):
        _, on_click, _ = self._por_id(marker_id)
        if on_click:
            on_click()

    def hover(self, marker_id: str, entering: bool = True):
        _, _, on_hover = self._por_id(marker_id)
        if on_hover:
            on_hover(entering)

    # ------------------------------------------------------------
    # 🔔 Eventos
    # ------------------------------------------------------------
    def add_listener(self, event, callback):
        if event not in MAP_EVENTS:
            raise ValueError(f"Evento desconhecido: {event}")
        handle = next(self._handles)
        self._listeners[handle] = (event, callback)
        return handle

    def remove_listener(self, handle):
        self._listeners.pop(handle, None)

    def _emit(self, event: str):
        for ev, callback in list(self._listeners.values()):
            if ev == event:
                try:
                    callback()
                except Exception as e:
                    logger.error(f"❌ Listener de '{event}' falhou: {e}")
