# tests/conftest.py

import pytest

from map_clusterization.config.settings import ClusterSettings, TimingSettings
from map_clusterization.domain.entities import PointRecord

# Busan (mesma latitude para todos: distâncias só em longitude)
LAT_BASE = 35.2
LON_BASE = 129.0


class _FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Scheduler manual: timers só disparam em advance(ms)."""

    def __init__(self):
        self.now = 0.0
        self._timers = []

    def call_later(self, delay_s, callback):
        handle = _FakeHandle(self.now + delay_s, callback)
        self._timers.append(handle)
        return handle

    @property
    def pending(self):
        return [t for t in self._timers if not t.cancelled]

    def advance(self, ms):
        alvo = self.now + ms / 1000.0
        while True:
            vencidos = [t for t in self._timers if not t.cancelled and t.when <= alvo + 1e-9]
            if not vencidos:
                break
            timer = min(vencidos, key=lambda t: t.when)
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.now = alvo
        self._timers = [t for t in self._timers if not t.cancelled]


class FakeClock:
    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms / 1000.0


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cluster_settings():
    return ClusterSettings(radius=80.0, min_points=2, min_zoom=0, max_zoom=16)


@pytest.fixture
def timing():
    return TimingSettings(viewport_debounce_ms=300, click_throttle_ms=200, reload_debounce_ms=500)


@pytest.fixture
def pontos_proximos():
    """
    5 pontos espaçados 0.003° em longitude.
    - zoom 12: ~7px entre vizinhos (um único cluster)
    - zoom 16: ~140px entre vizinhos (todos isolados)
    """
    return [
        PointRecord(
            id=f"p{i}",
            latitude=LAT_BASE,
            longitude=LON_BASE + 0.003 * i,
            name=f"Loja {i}",
            category="restaurant",
            price=1000.0 + i,
        )
        for i in range(5)
    ]


@pytest.fixture
def dois_grupos():
    """
    Grupos a (3 pontos) e b (3 pontos), 0.0005° entre vizinhos e 0.01° entre grupos.
    - zoom 16..14: dois clusters de 3
    - zoom <= 13: um cluster de 6
    """
    lons_a = [LON_BASE, LON_BASE + 0.0005, LON_BASE + 0.001]
    lons_b = [LON_BASE + 0.011, LON_BASE + 0.0115, LON_BASE + 0.012]
    registros = [
        PointRecord(id=f"a{i}", latitude=LAT_BASE, longitude=lon, category="retail", price=500.0)
        for i, lon in enumerate(lons_a)
    ]
    registros += [
        PointRecord(id=f"b{i}", latitude=LAT_BASE, longitude=lon, category="office", price=700.0)
        for i, lon in enumerate(lons_b)
    ]
    return registros


@pytest.fixture
def pontos_espalhados():
    """Pontos a ~1° uns dos outros: nunca agrupam em zoom >= 3."""
    return [
        PointRecord(id=f"x{i}", latitude=LAT_BASE + i, longitude=LON_BASE + i, category="etc")
        for i in range(4)
    ]
