# ============================================================
# 📦 src/map_clusterization/domain/spatial_index.py
# ============================================================

import math
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
from loguru import logger
from sklearn.neighbors import KDTree

from map_clusterization.config.settings import ClusterSettings
from map_clusterization.domain.entities import ClusterFeature, PointFeature, PointRecord
from map_clusterization.domain.projection import lat_to_y, lon_to_x, pixels_to_world

ZOOM_BITS = 5

# offsets da vizinhança 5x5 (metade, para não repetir pares)
_OFFSETS_VIZINHOS = [
    (dx, dy) for dx in range(-2, 3) for dy in range(-2, 3) if (dx, dy) > (0, 0)
]


class ClusterNotFoundError(KeyError):
    """Id de cluster desconhecido (ou de um índice já substituído)."""


@dataclass(frozen=True)
class _ClusterNode:
    cluster_id: int
    root: int
    formed_zoom: int
    members: np.ndarray
    latitude: float
    longitude: float

    @property
    def point_count(self) -> int:
        return int(len(self.members))


# ============================================================
# 🔗 Union-find (raiz = menor rank do componente)
# ============================================================
class _UnionFind:
    def __init__(self, parent: np.ndarray):
        self.parent = parent.tolist()

    def find(self, i: int) -> int:
        parent = self.parent
        raiz = i
        while parent[raiz] != raiz:
            raiz = parent[raiz]
        while parent[i] != raiz:
            parent[i], i = raiz, parent[i]
        return raiz

    def union(self, a: int, b: int) -> bool:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        if ra < rb:
            self.parent[rb] = ra
        else:
            self.parent[ra] = rb
        return True

    def labels(self) -> np.ndarray:
        return np.array([self.find(i) for i in range(len(self.parent))], dtype=np.int64)


def _distancia_minima(xy: np.ndarray, a: List[int], b: List[int], arvores: Dict) -> float:
    """Menor distância euclidiana entre os pontos das células a e b."""
    if len(a) * len(b) <= 4096:
        diff = xy[a][:, None, :] - xy[b][None, :, :]
        return float(np.sqrt((diff ** 2).sum(axis=2)).min())

    # conjuntos grandes: KDTree sobre o maior, consulta com o menor
    if len(a) > len(b):
        a, b = b, a
    chave = tuple(b[:1]) + (len(b),)
    arvore = arvores.get(chave)
    if arvore is None:
        arvore = KDTree(xy[b])
        arvores[chave] = arvore
    dist, _ = arvore.query(xy[a], k=1)
    return float(dist.min())


def _componentes_conexos(xy: np.ndarray, raio: float, parent_inicial: np.ndarray) -> np.ndarray:
    """
    Componentes conexos do grafo "distância <= raio" (semântica transitiva).
    - Células de lado raio/√2: todos os pontos de uma célula estão a <= raio entre si.
    - Células vizinhas (5x5) só são testadas se ainda estão em componentes distintos.
    - parent_inicial: rótulos do zoom seguinte (mais fino), que sempre refinam os deste.
    """
    uf = _UnionFind(parent_inicial)
    lado = raio / math.sqrt(2.0)

    celulas: Dict[Tuple[int, int], List[int]] = {}
    for i, chave in enumerate(map(tuple, np.floor(xy / lado).astype(np.int64).tolist())):
        celulas.setdefault(chave, []).append(i)

    for idx in celulas.values():
        for j in idx[1:]:
            uf.union(idx[0], j)

    arvores: Dict = {}
    for (cx, cy), idx_a in celulas.items():
        for dx, dy in _OFFSETS_VIZINHOS:
            idx_b = celulas.get((cx + dx, cy + dy))
            if idx_b is None or uf.find(idx_a[0]) == uf.find(idx_b[0]):
                continue
            if _distancia_minima(xy, idx_a, idx_b, arvores) <= raio:
                uf.union(idx_a[0], idx_b[0])

    return uf.labels()


def _coordenada_valida(lat, lon) -> bool:
    try:
        lat_f, lon_f = float(lat), float(lon)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        return False
    return -90.0 <= lat_f <= 90.0 and -180.0 <= lon_f <= 180.0


# ============================================================
# 🗂️ Índice espacial hierárquico
# ============================================================
class SpatialIndex:
    """
    Índice imutável construído uma vez por carga de dados.

    Para cada zoom em [min_zoom, max_zoom] guarda o rótulo de cluster de cada
    ponto (-1 = ponto isolado). Acima de max_zoom todos os pontos são isolados.
    Pontos são ordenados por id: o rank de um ponto é sua posição nessa ordem
    e todos os desempates usam o rank.
    """

    def __init__(self, records: List[PointRecord], settings: ClusterSettings):
        self.settings = settings
        self.records = records

        n = len(records)
        self._lat = np.array([r.latitude for r in records], dtype=np.float64)
        self._lon = np.array([r.longitude for r in records], dtype=np.float64)
        self._xy = np.column_stack([lon_to_x(self._lon), lat_to_y(self._lat)]) if n else np.empty((0, 2))
        self._tree: Optional[KDTree] = KDTree(self._xy) if n else None

        self._roots: Dict[int, np.ndarray] = {}
        self._level_clusters: Dict[int, Dict[int, int]] = {}
        self._clusters: Dict[int, _ClusterNode] = {}

        if n:
            self._construir_niveis()

    # ------------------------------------------------------------
    # 🏗️ Construção
    # ------------------------------------------------------------
    def _construir_niveis(self):
        s = self.settings
        n = len(self.records)
        labels = np.arange(n, dtype=np.int64)
        anteriores: Dict[int, int] = {}

        for z in range(s.max_zoom, s.min_zoom - 1, -1):
            raio = pixels_to_world(s.radius, z, s.tile_size)
            labels = _componentes_conexos(self._xy, raio, labels)

            ordem = np.argsort(labels, kind="stable")
            rotulos_ord = labels[ordem]
            cortes = np.flatnonzero(np.diff(rotulos_ord)) + 1
            grupos = np.split(ordem, cortes)

            roots = np.full(n, -1, dtype=np.int64)
            nivel: Dict[int, int] = {}
            for membros in grupos:
                if len(membros) < s.min_points:
                    continue
                root = int(membros[0])
                roots[membros] = root

                cid_anterior = anteriores.get(root)
                if cid_anterior is not None and self._clusters[cid_anterior].point_count == len(membros):
                    # mesma composição do zoom seguinte → mesmo cluster
                    nivel[root] = cid_anterior
                    continue

                cid = (root << ZOOM_BITS) + (z + 1)
                self._clusters[cid] = _ClusterNode(
                    cluster_id=cid,
                    root=root,
                    formed_zoom=z,
                    members=membros,
                    latitude=float(self._lat[membros].mean()),
                    longitude=float(self._lon[membros].mean()),
                )
                nivel[root] = cid

            self._roots[z] = roots
            self._level_clusters[z] = nivel
            anteriores = nivel

            logger.debug(
                f"🔎 Zoom {z}: {len(nivel)} clusters | "
                f"{int(np.sum(roots == -1))} pontos isolados | raio={raio:.3e}"
            )

    # ------------------------------------------------------------
    # 📐 Primitivas de consulta
    # ------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records

    @property
    def min_zoom(self) -> int:
        return self.settings.min_zoom

    @property
    def max_zoom(self) -> int:
        return self.settings.max_zoom

    def level_zoom(self, zoom: int) -> int:
        """Zoom efetivo para clusterização (max_zoom + 1 = só pontos isolados)."""
        return max(self.min_zoom, min(int(zoom), self.max_zoom + 1))

    def ranks_in_box(self, x0: float, y0: float, x1: float, y1: float) -> np.ndarray:
        """Ranks (ordenados) dos pontos dentro do retângulo projetado."""
        if self._tree is None:
            return np.empty(0, dtype=np.int64)

        centro = [[(x0 + x1) / 2.0, (y0 + y1) / 2.0]]
        raio = math.hypot(x1 - x0, y1 - y0) / 2.0
        candidatos = self._tree.query_radius(centro, r=raio * (1 + 1e-9) + 1e-15)[0]
        if not len(candidatos):
            return np.empty(0, dtype=np.int64)

        xs, ys = self._xy[candidatos, 0], self._xy[candidatos, 1]
        mask = (xs >= x0) & (xs <= x1) & (ys >= y0) & (ys <= y1)
        return np.sort(candidatos[mask]).astype(np.int64)

    def roots_at(self, zoom: int) -> Optional[np.ndarray]:
        return self._roots.get(self.level_zoom(zoom))

    def cluster_id_at(self, zoom: int, root: int) -> int:
        return self._level_clusters[self.level_zoom(zoom)][root]

    def point_feature(self, rank: int) -> PointFeature:
        return PointFeature(record=self.records[rank])

    def cluster_feature(self, cluster_id: int, zoom: int) -> ClusterFeature:
        node = self._node(cluster_id)
        return ClusterFeature(
            cluster_id=node.cluster_id,
            latitude=node.latitude,
            longitude=node.longitude,
            point_count=node.point_count,
            zoom=self.level_zoom(zoom),
        )

    # ------------------------------------------------------------
    # 🔍 Operações por cluster
    # ------------------------------------------------------------
    def _node(self, cluster_id: int) -> _ClusterNode:
        node = self._clusters.get(int(cluster_id))
        if node is None:
            raise ClusterNotFoundError(f"Cluster {cluster_id} não encontrado no índice atual")
        return node

    def has_cluster(self, cluster_id: int) -> bool:
        return int(cluster_id) in self._clusters

    def get_expansion_zoom(self, cluster_id: int) -> int:
        """Menor zoom em que esta composição exata se divide em >= 2 features."""
        return self._node(cluster_id).formed_zoom + 1

    def get_leaves(self, cluster_id: int, limit: Optional[int] = 10, offset: int = 0) -> List[PointRecord]:
        membros = self._node(cluster_id).members
        fim = None if limit is None else offset + limit
        return [self.records[int(i)] for i in membros[offset:fim]]

    def get_children(self, cluster_id: int):
        """Features em que o cluster se divide no seu zoom de expansão."""
        node = self._node(cluster_id)
        z = node.formed_zoom + 1
        return self.features_for_ranks(node.members, z)

    def features_for_ranks(self, ranks: Iterable[int], zoom: int):
        """Agrupa ranks nas features do nível `zoom`, na ordem do menor rank."""
        roots = self.roots_at(zoom)
        features = []
        vistos = set()
        for rank in ranks:
            rank = int(rank)
            root = -1 if roots is None else int(roots[rank])
            if root == -1:
                features.append(self.point_feature(rank))
                continue
            if root in vistos:
                continue
            vistos.add(root)
            features.append(self.cluster_feature(self.cluster_id_at(zoom, root), zoom))
        return features


# ============================================================
# 🚀 Construção a partir dos registros
# ============================================================
def build_index(points: Iterable[PointRecord], settings: Optional[ClusterSettings] = None) -> SpatialIndex:
    """
    Constrói o índice a partir de uma lista de PointRecord.
    - Registros com coordenadas ausentes/NaN/fora da faixa são ignorados.
    - Ids duplicados: a primeira ocorrência prevalece.
    """
    settings = settings or ClusterSettings()
    start = time.time()

    validos: Dict[str, PointRecord] = {}
    ignorados = 0
    duplicados = 0
    for p in points:
        if not _coordenada_valida(p.latitude, p.longitude):
            ignorados += 1
            logger.warning(f"⚠️ Ponto {p.id!r} ignorado: coordenadas inválidas ({p.latitude}, {p.longitude})")
            continue
        if p.id in validos:
            duplicados += 1
            logger.warning(f"⚠️ Id duplicado ignorado: {p.id!r}")
            continue
        validos[p.id] = p

    records = [validos[k] for k in sorted(validos)]
    logger.info(
        f"🏗️ Construindo índice espacial | pontos={len(records)} | ignorados={ignorados} | "
        f"duplicados={duplicados} | zoom=[{settings.min_zoom}, {settings.max_zoom}] | raio={settings.radius}px"
    )

    index = SpatialIndex(records, settings)

    elapsed = round(time.time() - start, 3)
    logger.success(f"✅ Índice construído: {len(records)} pontos, {len(index._clusters)} clusters em {elapsed}s")
    return index
