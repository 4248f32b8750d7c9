# ============================================================
# 📍 Padrões do mapa (centro, zooms, ícones e faixas de cluster)
# ============================================================

# Busan
DEFAULT_MAP_CENTER = {"lat": 35.22889, "lon": 129.0813095}

ZOOM_LEVELS = {
    "COUNTRY": 6,
    "PROVINCE": 8,
    "CITY": 12,
    "DISTRICT": 15,
    "STREET": 18,
}

DEFAULT_ZOOM = ZOOM_LEVELS["DISTRICT"]

CATEGORY_ICONS = {
    "restaurant": "/markers/restaurant.svg",
    "retail": "/markers/retail.svg",
    "office": "/markers/office.svg",
    "etc": "/markers/etc.svg",
}

CATEGORY_COLORS = {
    "restaurant": "#ef4444",
    "retail": "#3b82f6",
    "office": "#10b981",
    "etc": "#6b7280",
}

# (limite superior exclusivo, tier, tamanho px, cor)
CLUSTER_TIERS = [
    (10, "small", 40, "#4285F4"),
    (100, "medium", 50, "#FF6B35"),
    (None, "large", 60, "#E53E3E"),
]

# (largura, altura) em px; âncora na base do pino
POINT_ICON_SIZES = {
    "default": (40, 50),
    "hovered": (45, 56),
    "selected": (50, 62),
}

Z_INDEX_POINT = 100
Z_INDEX_EMPHASIS = 1000
