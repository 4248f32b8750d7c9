# tests/map_clusterization/api/test_routes.py

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from map_clusterization.api.cluster_map_api import app
from map_clusterization.api.routes import get_manager
from map_clusterization.application.marker_manager import MarkerManager
from map_clusterization.infrastructure.map_widget import HeadlessMapWidget

BBOX = {"west": 128.9, "south": 35.1, "east": 129.2, "north": 35.3}


@pytest.fixture
def manager(cluster_settings, timing, scheduler, clock):
    return MarkerManager(
        HeadlessMapWidget(), cluster_settings=cluster_settings, timing=timing, scheduler=scheduler, clock=clock
    )


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


def _payload(pontos):
    return {
        "points": [
            {"id": p.id, "latitude": p.latitude, "longitude": p.longitude, "category": p.category, "price": p.price}
            for p in pontos
        ]
    }


def test_health(client):
    resp = client.get("/map/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_carga_ignora_pontos_sem_coordenada(client, pontos_proximos):
    payload = _payload(pontos_proximos)
    payload["points"].append({"id": "sem-coord", "latitude": None, "longitude": 129.0})

    resp = client.post("/map/points", json=payload)

    assert resp.status_code == 200
    assert resp.json() == {"recebidos": 6, "indexados": 5, "ignorados": 1}


def test_clusters_do_viewport(client, pontos_proximos):
    client.post("/map/points", json=_payload(pontos_proximos))

    resp = client.get("/map/clusters", params={**BBOX, "zoom": 12})
    body = resp.json()

    assert resp.status_code == 200
    assert body["zoom"] == 12 and body["total"] == 1
    marcador = body["markers"][0]
    assert marcador["id"] == "cluster-16"
    assert marcador["kind"] == "cluster"
    assert marcador["point_count"] == 5
    assert marcador["size"] == [40, 40]

    resp = client.get("/map/clusters", params={**BBOX, "zoom": 17, "focal_lat": 35.2, "focal_lon": 129.0})
    assert [m["id"] for m in resp.json()["markers"]] == ["p0", "p1", "p2", "p3", "p4"]


def test_zoom_de_expansao_e_folhas(client, pontos_proximos):
    client.post("/map/points", json=_payload(pontos_proximos))

    resp = client.get("/map/clusters/16/expansion-zoom")
    assert resp.json() == {"cluster_id": 16, "expansion_zoom": 16}

    resp = client.get("/map/clusters/16/leaves", params={"limit": 2, "offset": 1})
    assert [f["id"] for f in resp.json()] == ["p1", "p2"]


def test_cluster_inexistente_retorna_404(client):
    assert client.get("/map/clusters/999/expansion-zoom").status_code == 404
    assert client.get("/map/clusters/999/leaves").status_code == 404


def test_parametros_invalidos(client):
    resp = client.get("/map/clusters", params={**BBOX, "zoom": -1})
    assert resp.status_code == 422


def test_selecao(client, pontos_proximos):
    client.post("/map/points", json=_payload(pontos_proximos))

    resp = client.post("/map/selection", json={"point_id": "p3"})
    assert resp.json() == {"selected_id": "p3"}

    resp = client.get("/map/clusters", params={**BBOX, "zoom": 17})
    selecionados = [m["id"] for m in resp.json()["markers"] if m["is_selected"]]
    assert selecionados == ["p3"]


def test_preco_nan_vira_preco_ausente(client, manager):
    corpo = '{"points": [{"id": "x", "latitude": 35.2, "longitude": 129.0, "price": NaN}]}'
    resp = client.post("/map/points", content=corpo, headers={"content-type": "application/json"})

    assert resp.status_code == 200
    assert manager.index.records[0].price is None


def test_consulta_aguarda_o_lock_do_manager(client, manager, pontos_proximos):
    client.post("/map/points", json=_payload(pontos_proximos))
    respostas = []

    def consultar():
        respostas.append(client.get("/map/clusters", params={**BBOX, "zoom": 17}))

    with manager.lock:
        t = threading.Thread(target=consultar)
        t.start()
        t.join(timeout=0.3)
        assert t.is_alive() and respostas == []

    t.join(timeout=10)
    assert not t.is_alive()
    assert respostas[0].json()["total"] == 5


def test_consultas_concorrentes_nao_misturam_viewports(client, pontos_proximos):
    client.post("/map/points", json=_payload(pontos_proximos))
    esperado = {12: 1, 17: 5}

    def consultar(zoom):
        body = client.get("/map/clusters", params={**BBOX, "zoom": zoom}).json()
        return zoom, body["zoom"], body["total"]

    with ThreadPoolExecutor(max_workers=8) as pool:
        resultados = list(pool.map(consultar, [12, 17] * 20))

    for pedido, zoom, total in resultados:
        assert zoom == pedido
        assert total == esperado[pedido]
