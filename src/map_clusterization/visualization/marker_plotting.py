# =========================================================
# 📦 src/map_clusterization/visualization/marker_plotting.py
# =========================================================

from pathlib import Path
from typing import Optional, Sequence

import folium
from loguru import logger

from map_clusterization.config.map_defaults import CATEGORY_COLORS, DEFAULT_MAP_CENTER
from map_clusterization.domain.entities import Bounds, MaterializedMarker


def gerar_mapa_marcadores(
    markers: Sequence[MaterializedMarker],
    output_path: Path,
    zoom: int,
    bounds: Optional[Bounds] = None,
) -> Optional[Path]:
    """
    Gera mapa HTML com os marcadores materializados.
    - Clusters: círculo com tamanho/cor do tier e contagem no tooltip
    - Pontos: círculo colorido pela categoria; selecionado com borda destacada
    """
    if not markers:
        logger.warning("❌ Nenhum marcador para plotar.")
        return None

    if bounds is not None:
        lat_centro = (bounds.south + bounds.north) / 2.0
        lon_centro = (bounds.west + bounds.east) / 2.0
    else:
        lat_centro, lon_centro = DEFAULT_MAP_CENTER["lat"], DEFAULT_MAP_CENTER["lon"]

    m = folium.Map(location=[lat_centro, lon_centro], zoom_start=zoom, tiles="CartoDB positron")

    for mk in markers:
        if mk.is_cluster:
            folium.CircleMarker(
                location=[mk.latitude, mk.longitude],
                radius=mk.size[0] / 4,
                color="white",
                weight=3,
                fill=True,
                fill_color=mk.color,
                fill_opacity=0.9,
                tooltip=f"{mk.point_count} imóveis",
                popup=folium.Popup(
                    f"<b>Cluster:</b> {mk.cluster_id}<br><b>Imóveis:</b> {mk.point_count}<br><b>Tier:</b> {mk.tier}",
                    max_width=250,
                ),
            ).add_to(m)
            continue

        cor = CATEGORY_COLORS.get(mk.category or "etc", CATEGORY_COLORS["etc"])
        preco = f"{mk.price:,.0f}" if mk.price is not None else "não informado"
        folium.CircleMarker(
            location=[mk.latitude, mk.longitude],
            radius=8 if mk.is_selected else 5,
            color="#111111" if mk.is_selected else cor,
            weight=3 if mk.is_selected else 1,
            fill=True,
            fill_color=cor,
            fill_opacity=0.85,
            tooltip=mk.name or mk.id,
            popup=folium.Popup(
                f"<b>{mk.name or mk.id}</b><br>"
                f"<b>Categoria:</b> {mk.category or 'etc'}<br>"
                f"<b>Preço:</b> {preco}<br>"
                f"<b>Lat/Lon:</b> {mk.latitude:.6f}, {mk.longitude:.6f}",
                max_width=300,
            ),
        ).add_to(m)

    if bounds is not None:
        m.fit_bounds([[bounds.south, bounds.west], [bounds.north, bounds.east]])

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    m.save(str(output_path))
    logger.success(f"✅ Mapa salvo em: {output_path}")
    return output_path
