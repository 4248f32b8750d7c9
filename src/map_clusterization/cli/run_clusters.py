# ============================================================
# 📦 src/map_clusterization/cli/run_clusters.py
# ============================================================

import argparse
import json
import sys
from dataclasses import asdict, replace
from pathlib import Path

from loguru import logger

from map_clusterization.config.map_defaults import ZOOM_LEVELS
from map_clusterization.config.settings import load_cluster_settings, load_materialization_policy
from map_clusterization.domain.entities import Bounds, MapState
from map_clusterization.domain.marker_optimizer import materialize
from map_clusterization.domain.spatial_index import build_index
from map_clusterization.domain.viewport_query import query_clusters
from map_clusterization.infrastructure.point_loader import carregar_pontos


def validar_lat(valor) -> float:
    lat = float(valor)
    if not -90 <= lat <= 90:
        raise argparse.ArgumentTypeError(f"Latitude inválida: {valor}")
    return lat


def validar_lon(valor) -> float:
    lon = float(valor)
    if not -180 <= lon <= 180:
        raise argparse.ArgumentTypeError(f"Longitude inválida: {valor}")
    return lon


def validar_zoom(valor) -> int:
    """Zoom inteiro ou nome de nível (COUNTRY, CITY, STREET...)."""
    nome = str(valor).upper()
    if nome in ZOOM_LEVELS:
        return ZOOM_LEVELS[nome]
    try:
        return int(valor)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Zoom inválido: {valor} (use um inteiro ou {', '.join(ZOOM_LEVELS)})"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Clusterização de marcadores por viewport (imóveis comerciais vagos)"
    )

    # OBRIGATÓRIOS
    parser.add_argument("--input", required=True, help="Arquivo .csv ou .json com os pontos")
    parser.add_argument(
        "--bbox", nargs=4, type=float, required=True, metavar=("WEST", "SOUTH", "EAST", "NORTH")
    )
    parser.add_argument("--zoom", type=validar_zoom, required=True, help="Inteiro ou nível: " + ", ".join(ZOOM_LEVELS))

    # OPCIONAIS
    parser.add_argument("--focal", nargs=2, type=float, metavar=("LAT", "LON"))
    parser.add_argument("--selected", help="Id do ponto selecionado")
    parser.add_argument("--radius", type=float, help="Raio de clusterização (px)")
    parser.add_argument("--max_markers", type=int)
    parser.add_argument("--html", help="Gera mapa folium neste caminho")
    parser.add_argument("--json", action="store_true", help="Imprime os marcadores em JSON")
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logger.remove()
    logger.add(
        sys.stderr,
        colorize=True,
        level="DEBUG" if args.verbose else "INFO",
        format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>",
    )

    if args.zoom < 0:
        logger.error(f"❌ Zoom inválido: {args.zoom}")
        return 2
    if args.focal:
        try:
            validar_lat(args.focal[0])
            validar_lon(args.focal[1])
        except argparse.ArgumentTypeError as e:
            logger.error(f"❌ Ponto focal inválido: {e}")
            return 2

    settings = load_cluster_settings()
    if args.radius:
        settings = replace(settings, radius=args.radius)
    policy = load_materialization_policy()
    if args.max_markers:
        policy = replace(policy, max_markers=args.max_markers)

    west, south, east, north = args.bbox
    bounds = Bounds(west=west, south=south, east=east, north=north)

    logger.info("==============================================")
    logger.info("🚀 Iniciando clusterização de marcadores via CLI")
    logger.info("==============================================")
    logger.info(f"📦 input              = {args.input}")
    logger.info(f"🗺️ bbox               = {bounds.as_bbox()}")
    logger.info(f"🔍 zoom               = {args.zoom}")
    logger.info(f"📏 raio (px)          = {settings.radius}")
    logger.info(f"🔢 max_markers        = {policy.max_markers}")
    logger.info(f"📍 ponto focal        = {tuple(args.focal) if args.focal else '-'}")

    try:
        pontos = carregar_pontos(args.input)
    except ValueError as e:
        logger.error(str(e))
        return 1

    index = build_index(pontos, settings)
    features = query_clusters(index, bounds, args.zoom)
    state = MapState(bounds=bounds, zoom=args.zoom, focal_point=tuple(args.focal) if args.focal else None)
    markers = materialize(features, state, policy, selected_id=args.selected)

    n_clusters = sum(1 for m in markers if m.is_cluster)
    logger.success(
        f"✅ {len(markers)} marcadores | {n_clusters} clusters | {len(markers) - n_clusters} pontos"
    )

    if args.json:
        print(json.dumps([asdict(m) for m in markers], ensure_ascii=False, indent=2))
    else:
        for m in markers:
            if m.is_cluster:
                print(f"{m.id}\t{m.latitude:.6f}\t{m.longitude:.6f}\t{m.point_count}\t{m.tier}")
            else:
                print(f"{m.id}\t{m.latitude:.6f}\t{m.longitude:.6f}\t{m.category or 'etc'}\t{'*' if m.is_selected else ''}")

    if args.html:
        from map_clusterization.visualization.marker_plotting import gerar_mapa_marcadores

        gerar_mapa_marcadores(markers, Path(args.html), zoom=args.zoom, bounds=bounds)

    return 0


if __name__ == "__main__":
    sys.exit(main())
