# ============================================================
# 📦 src/map_clusterization/application/timers.py
# ============================================================

import asyncio
import time
from typing import Any, Callable, Optional

from loguru import logger


class LoopScheduler:
    """
    Agenda callbacks no event loop asyncio em execução (call_later).

    Sem loop (host síncrono, script, CLI) o callback roda na hora e o
    retorno é None: o debounce vira chamada direta.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_s: float, callback: Callable[[], None]):
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning("⚠️ Sem event loop em execução: callback executado imediatamente")
                callback()
                return None
        return loop.call_later(delay_s, callback)


# ============================================================
# ⏳ Debounce: executa uma vez, após a janela de silêncio
# ============================================================
class Debouncer:
    """
    Cada novo trigger cancela o timer pendente e agenda outro com os
    argumentos mais recentes. Estados intermediários são descartados.
    """

    def __init__(self, delay_ms: int, callback: Callable[..., Any], scheduler, nome: str = "debounce"):
        self.delay_ms = delay_ms
        self.callback = callback
        self.scheduler = scheduler
        self.nome = nome
        self._handle = None
        self._args: tuple = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args):
        if self._handle is not None:
            self._handle.cancel()
            logger.debug(f"⏳ {self.nome}: timer anterior substituído")
        self._args = args
        self._handle = self.scheduler.call_later(self.delay_ms / 1000.0, self._fire)

    def _fire(self):
        args, self._handle, self._args = self._args, None, ()
        self.callback(*args)

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            self._args = ()

    def flush(self):
        """Executa imediatamente o callback pendente (se houver)."""
        if self._handle is not None:
            self._handle.cancel()
            self._fire()


# ============================================================
# 🚦 Throttle: no máximo uma execução por janela
# ============================================================
class Throttler:
    def __init__(self, window_ms: int, clock: Callable[[], float] = time.monotonic, nome: str = "throttle"):
        self.window_ms = window_ms
        self.clock = clock
        self.nome = nome
        self._ultimo: Optional[float] = None

    def allow(self) -> bool:
        agora = self.clock()
        if self._ultimo is not None and (agora - self._ultimo) * 1000.0 < self.window_ms:
            logger.debug(f"🚦 {self.nome}: evento descartado (janela de {self.window_ms}ms)")
            return False
        self._ultimo = agora
        return True
