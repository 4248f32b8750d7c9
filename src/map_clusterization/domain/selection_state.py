# ============================================================
# 📦 src/map_clusterization/domain/selection_state.py
# ============================================================

import threading
from typing import Callable, List, Optional

from loguru import logger

Listener = Callable[[str, Optional[str]], None]


class SelectionStore:
    """
    Estado global de seleção/hover dos marcadores.
    - Um único escritor por evento; última escrita vence.
    - Assinantes recebem (campo, novo_valor) quando o valor muda.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._selected_id: Optional[str] = None
        self._hovered_id: Optional[str] = None
        self._listeners: List[Listener] = []

    @property
    def selected_id(self) -> Optional[str]:
        with self._lock:
            return self._selected_id

    @property
    def hovered_id(self) -> Optional[str]:
        with self._lock:
            return self._hovered_id

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _cancelar():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _cancelar

    def _set(self, campo: str, valor: Optional[str]):
        with self._lock:
            atual = getattr(self, campo)
            if atual == valor:
                return
            setattr(self, campo, valor)
            listeners = list(self._listeners)

        nome = campo.lstrip("_")
        for listener in listeners:
            listener(nome, valor)

    def set_selected(self, point_id: Optional[str]):
        self._set("_selected_id", point_id)

    def set_hovered(self, point_id: Optional[str]):
        self._set("_hovered_id", point_id)

    def clear(self):
        logger.debug("🧹 Seleção e hover limpos")
        self.set_selected(None)
        self.set_hovered(None)
