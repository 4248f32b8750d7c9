# tests/map_clusterization/infrastructure/test_point_loader.py

import json

import pytest

from map_clusterization.infrastructure.point_loader import (
    carregar_pontos,
    detectar_separador,
    records_from_dicts,
)


def test_csv_com_ponto_e_virgula_e_aliases(tmp_path):
    arquivo = tmp_path / "imoveis.csv"
    arquivo.write_text(
        "id;name;lat;lng;shopType;monthlyRent;area\n"
        "1;Loja Seomyeon;35.1577;129.0590;restaurant;2500000;33.5\n"
        "2;Sala Haeundae;35.1631;129.1635;office;;60\n"
        "3;Sem coordenada;;129.1;retail;100;10\n",
        encoding="utf-8",
    )

    assert detectar_separador(arquivo) == ";"
    registros = carregar_pontos(arquivo)

    assert [r.id for r in registros] == ["1", "2"]
    primeiro = registros[0]
    assert primeiro.latitude == pytest.approx(35.1577)
    assert primeiro.longitude == pytest.approx(129.0590)
    assert primeiro.category == "restaurant"
    assert primeiro.price == pytest.approx(2500000)
    assert primeiro.attributes == {"area": pytest.approx(33.5)}
    assert registros[1].price is None


def test_json_lista_de_objetos(tmp_path):
    arquivo = tmp_path / "imoveis.json"
    arquivo.write_text(
        json.dumps(
            [
                {"id": "a", "latitude": 35.2, "longitude": 129.0, "category": "retail", "price": 900},
                {"id": "b", "latitude": 35.3, "longitude": 129.1},
            ]
        ),
        encoding="utf-8",
    )

    registros = carregar_pontos(arquivo)

    assert [r.id for r in registros] == ["a", "b"]
    assert registros[0].price == 900
    assert registros[1].category is None


def test_colunas_obrigatorias_ausentes():
    with pytest.raises(ValueError, match="Colunas obrigatórias"):
        records_from_dicts([{"id": "a", "latitude": 35.2}])


def test_lista_vazia():
    assert records_from_dicts([]) == []


def test_arquivo_inexistente_ou_formato_invalido(tmp_path):
    with pytest.raises(ValueError, match="não encontrado"):
        carregar_pontos(tmp_path / "nada.csv")

    planilha = tmp_path / "imoveis.xlsx"
    planilha.write_bytes(b"")
    with pytest.raises(ValueError, match="não suportado"):
        carregar_pontos(planilha)
