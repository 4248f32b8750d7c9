# tests/map_clusterization/domain/test_marker_optimizer.py

import pytest

from map_clusterization.config.settings import MaterializationPolicy
from map_clusterization.domain.entities import (
    Bounds,
    ClusterFeature,
    MapState,
    PointFeature,
    PointRecord,
)
from map_clusterization.domain.marker_optimizer import (
    cap_by_zoom,
    cluster_tier,
    filter_by_bounds,
    importance_by_attr,
    materialize,
    prioritize_by_distance,
)

BBOX = Bounds(west=128.0, south=35.0, east=130.0, north=36.0)


def _ponto(pid, lat=35.5, lon=129.0, price=None, category="retail", **attrs):
    return PointFeature(
        PointRecord(id=pid, latitude=lat, longitude=lon, name=f"Imóvel {pid}", category=category, price=price, attributes=attrs)
    )


def _cluster(cid, count, lat=35.5, lon=129.0):
    return ClusterFeature(cluster_id=cid, latitude=lat, longitude=lon, point_count=count, zoom=8)


def test_600_pontos_no_zoom_8_mantem_166_mais_caros():
    pontos = [_ponto(f"p{i:03d}", lon=128.5 + i / 1000.0, price=float(i)) for i in range(600)]
    markers = materialize(pontos, MapState(bounds=BBOX, zoom=8), MaterializationPolicy())

    assert len(markers) == 166
    assert {m.price for m in markers} == {float(i) for i in range(434, 600)}


def test_preco_nan_nao_quebra_o_limite_por_zoom():
    precos = [float(i) for i in range(600)]
    precos[10] = float("nan")
    pontos = [_ponto(f"p{i:03d}", lon=128.5 + i / 1000.0, price=p) for i, p in enumerate(precos)]

    markers = materialize(pontos, MapState(bounds=BBOX, zoom=8), MaterializationPolicy())

    assert len(markers) == 166
    assert [m.price for m in markers] == [float(i) for i in range(599, 433, -1)]


def test_importancia_nao_finita_conta_como_ausente():
    pontos = [
        _ponto("a", price=float("inf")),
        _ponto("b", price=2.0),
        _ponto("c", price=float("nan")),
        _ponto("d", price=1.0),
    ]
    mantidos = cap_by_zoom(pontos, 3, MaterializationPolicy(max_markers=3))
    assert [p.id for p in mantidos] == ["b"]

    chave_nan = lambda record: float("nan") if record.id == "b" else record.price
    mantidos = cap_by_zoom(pontos, 3, MaterializationPolicy(max_markers=3), importance=chave_nan)
    assert [p.id for p in mantidos] == ["d"]


def test_sem_limite_a_partir_do_zoom_minimo():
    pontos = [_ponto(f"p{i:03d}", price=float(i)) for i in range(600)]
    policy = MaterializationPolicy()

    assert len(cap_by_zoom(pontos, 10, policy)) == 600
    assert len(cap_by_zoom(pontos[:500], 8, policy)) == 500


def test_limite_por_zoom_ignora_clusters():
    clusters = [_cluster(i * 32 + 5, 3) for i in range(20)]
    pontos = [_ponto(f"p{i:02d}", price=float(i)) for i in range(12)]
    policy = MaterializationPolicy(max_markers=9)

    markers = materialize(clusters + pontos, MapState(bounds=BBOX, zoom=5), policy)

    assert sum(m.is_cluster for m in markers) == 20
    assert [m.id for m in markers if not m.is_cluster] == ["p11", "p10", "p09"]


def test_importancia_ausente_vai_para_o_fim_e_empate_por_id():
    pontos = [
        _ponto("c", price=10.0),
        _ponto("b", price=None),
        _ponto("a", price=10.0),
        _ponto("d", price=5.0),
        _ponto("e", price=None),
        _ponto("f", price=1.0),
        _ponto("g", price=None),
    ]
    mantidos = cap_by_zoom(pontos, 3, MaterializationPolicy(max_markers=6))
    assert [p.id for p in mantidos] == ["a", "c"]

    so_um_preco = [_ponto("z", price=None), _ponto("y", price=None), _ponto("x", price=0.5), _ponto("w", price=None)]
    mantidos = cap_by_zoom(so_um_preco, 3, MaterializationPolicy(max_markers=3))
    assert [p.id for p in mantidos] == ["x"]


def test_importancia_customizada_por_atributo():
    pontos = [_ponto(f"p{i}", area=float(10 - i)) for i in range(7)]
    mantidos = cap_by_zoom(pontos, 3, MaterializationPolicy(max_markers=6), importance=importance_by_attr("area"))
    assert [p.id for p in mantidos] == ["p0", "p1"]


def test_filtro_por_viewport_usa_centroide_do_cluster():
    dentro = _cluster(37, 4, lat=35.5, lon=129.0)
    fora = _cluster(69, 4, lat=37.0, lon=129.0)
    ponto_fora = _ponto("longe", lat=10.0, lon=10.0)

    assert filter_by_bounds([dentro, fora, ponto_fora, _ponto("perto")], BBOX) == [dentro, _ponto("perto")]


def test_prioridade_por_distancia_clusters_primeiro():
    clusters = [_cluster(5, 12), _cluster(37, 3)]
    pontos = [
        _ponto("longe", lat=35.9, lon=129.9),
        _ponto("perto", lat=35.5, lon=129.01),
        _ponto("medio", lat=35.6, lon=129.2),
    ]
    c, p = prioritize_by_distance(clusters, pontos, (35.5, 129.0), max_markers=4)

    assert c == clusters
    assert [x.id for x in p] == ["perto", "medio"]


def test_ponto_focal_limita_total_de_marcadores():
    pontos = [_ponto(f"p{i}", lon=129.0 + i / 100.0) for i in range(10)]
    state = MapState(bounds=BBOX, zoom=14, focal_point=(35.5, 129.0))
    markers = materialize([_cluster(5, 40)] + pontos, state, MaterializationPolicy(max_markers=4))

    assert [m.id for m in markers] == ["cluster-5", "p0", "p1", "p2"]


@pytest.mark.parametrize(
    "count, tier, tamanho, cor",
    [
        (2, "small", 40, "#4285F4"),
        (9, "small", 40, "#4285F4"),
        (10, "medium", 50, "#FF6B35"),
        (99, "medium", 50, "#FF6B35"),
        (100, "large", 60, "#E53E3E"),
        (5000, "large", 60, "#E53E3E"),
    ],
)
def test_tier_de_cluster(count, tier, tamanho, cor):
    assert cluster_tier(count) == (tier, tamanho, cor)


def test_atributos_de_renderizacao():
    features = [_ponto("sel", category="office"), _cluster(37, 15), _ponto("hov", category=None), _ponto("normal")]
    markers = materialize(features, MapState(bounds=BBOX, zoom=14), selected_id="sel", hovered_id="hov")
    por_id = {m.id: m for m in markers}

    assert [m.kind for m in markers] == ["cluster", "point", "point", "point"]

    cluster = por_id["cluster-37"]
    assert (cluster.tier, cluster.size, cluster.z_index, cluster.label) == ("medium", (50, 50), 1000, "15")
    assert cluster.click_target == "cluster-37" and cluster.cluster_id == 37

    sel = por_id["sel"]
    assert sel.is_selected and sel.size == (50, 62) and sel.z_index == 1000
    assert sel.icon == "/markers/office.svg"
    assert sel.anchor == (25, 62)

    hov = por_id["hov"]
    assert hov.is_hovered and not hov.is_selected and hov.size == (45, 56)
    assert hov.icon == "/markers/etc.svg"

    normal = por_id["normal"]
    assert normal.size == (40, 50) and normal.z_index == 100


def test_materializacao_idempotente():
    features = [_cluster(5, 120)] + [_ponto(f"p{i}", price=float(i)) for i in range(30)]
    state = MapState(bounds=BBOX, zoom=7, focal_point=(35.5, 129.0))
    policy = MaterializationPolicy(max_markers=20)

    assert materialize(features, state, policy) == materialize(features, state, policy)
