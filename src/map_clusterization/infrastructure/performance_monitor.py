# ============================================================
# 📦 src/map_clusterization/infrastructure/performance_monitor.py
# ============================================================

import time
from collections import defaultdict, deque
from typing import Callable, Dict

from loguru import logger

JANELA_MEDICOES = 10  # mantém só as 10 medições mais recentes por rótulo


class PerformanceMonitor:
    """Tempos (ms) das últimas execuções por rótulo."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self._metrics: Dict[str, deque] = defaultdict(lambda: deque(maxlen=JANELA_MEDICOES))

    def start_timing(self, label: str) -> Callable[[], float]:
        inicio = self._clock()

        def _stop() -> float:
            duracao_ms = (self._clock() - inicio) * 1000.0
            self._metrics[label].append(duracao_ms)
            logger.debug(f"⏱️ {label}: {duracao_ms:.2f}ms (média: {self.get_average_time(label):.2f}ms)")
            return duracao_ms

        return _stop

    def get_average_time(self, label: str) -> float:
        tempos = self._metrics.get(label)
        return sum(tempos) / len(tempos) if tempos else 0.0

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        return {
            label: {"current": tempos[-1] if tempos else 0.0, "average": self.get_average_time(label)}
            for label, tempos in self._metrics.items()
        }
