# ============================================================
# 📦 src/map_clusterization/infrastructure/point_loader.py
# ============================================================

from pathlib import Path
from typing import Any, Dict, Iterable, List

import numpy as np
import pandas as pd
from loguru import logger

from map_clusterization.domain.entities import PointRecord

# aliases aceitos (formato do front: shopType / monthlyRent)
COLUNAS_ALIAS = {
    "lat": "latitude",
    "lng": "longitude",
    "lon": "longitude",
    "shopType": "category",
    "shop_type": "category",
    "monthlyRent": "price",
    "monthly_rent": "price",
}
CAMPOS_BASE = ("id", "latitude", "longitude", "name", "category", "price")


def detectar_separador(path: Path) -> str:
    """Detecta automaticamente o separador do CSV."""
    with open(path, "r", encoding="utf-8-sig") as f:
        linha = f.readline()
        return ";" if ";" in linha else ","


def _limpar(valor: Any):
    if valor is None:
        return None
    if isinstance(valor, float) and np.isnan(valor):
        return None
    if isinstance(valor, np.generic):
        return valor.item()
    return valor


def records_from_frame(df: pd.DataFrame) -> List[PointRecord]:
    """
    Converte um DataFrame em PointRecord.
    Linhas sem id ou sem coordenadas numéricas são descartadas (com log).
    """
    df = df.rename(columns={k: v for k, v in COLUNAS_ALIAS.items() if k in df.columns})

    faltando = [c for c in ("id", "latitude", "longitude") if c not in df.columns]
    if faltando:
        raise ValueError(f"❌ Colunas obrigatórias ausentes: {faltando}")

    df = df.copy()
    df["latitude"] = pd.to_numeric(df["latitude"], errors="coerce")
    df["longitude"] = pd.to_numeric(df["longitude"], errors="coerce")
    if "price" in df.columns:
        df["price"] = pd.to_numeric(df["price"], errors="coerce")

    invalidos = df["id"].isna() | df["latitude"].isna() | df["longitude"].isna()
    if invalidos.any():
        logger.warning(f"⚠️ {int(invalidos.sum())} registros sem id/coordenadas descartados.")
    df = df[~invalidos]

    extras = [c for c in df.columns if c not in CAMPOS_BASE]
    records = []
    for row in df.to_dict(orient="records"):
        records.append(
            PointRecord(
                id=str(row["id"]),
                latitude=float(row["latitude"]),
                longitude=float(row["longitude"]),
                name=_limpar(row.get("name")),
                category=_limpar(row.get("category")),
                price=_limpar(row.get("price")),
                attributes={c: _limpar(row[c]) for c in extras},
            )
        )
    return records


def records_from_dicts(rows: Iterable[Dict[str, Any]]) -> List[PointRecord]:
    rows = list(rows)
    if not rows:
        return []
    return records_from_frame(pd.DataFrame(rows))


def carregar_pontos(path) -> List[PointRecord]:
    """Carrega registros de um arquivo CSV ou JSON (lista de objetos)."""
    path = Path(path)
    if not path.exists():
        raise ValueError(f"❌ Arquivo não encontrado: {path}")

    sufixo = path.suffix.lower()
    if sufixo == ".csv":
        df = pd.read_csv(path, sep=detectar_separador(path), encoding="utf-8-sig", dtype={"id": str})
    elif sufixo == ".json":
        df = pd.read_json(path, orient="records", dtype={"id": str})
    else:
        raise ValueError(f"❌ Formato não suportado: {sufixo} (use .csv ou .json)")

    records = records_from_frame(df)
    logger.info(f"📦 {len(records)} pontos carregados de {path.name}")
    return records
