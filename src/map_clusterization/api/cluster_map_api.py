# ============================================================
# 📦 src/map_clusterization/api/cluster_map_api.py
# ============================================================

import json

import numpy as np
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from map_clusterization.api.routes import router as map_router

# ============================================================
# 🚀 App
# ============================================================

app = FastAPI(
    title="Map Clusterization API",
    description="Clusterização de marcadores de imóveis comerciais vagos por viewport",
    version="1.0.0",
    openapi_url="/openapi.json",
    docs_url="/docs",
)

# ============================================================
# 🌍 CORS
# ============================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# 🧹 Middleware: sanitizar JSON (NaN / Infinity)
# ============================================================


def _limpar_json(obj):
    if isinstance(obj, dict):
        return {k: _limpar_json(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_limpar_json(i) for i in obj]
    if isinstance(obj, float) and (np.isnan(obj) or np.isinf(obj)):
        return None
    return obj


@app.middleware("http")
async def sanitize_json_response(request: Request, call_next):
    response = await call_next(request)

    content_type = response.headers.get("content-type", "")
    if "application/json" not in content_type:
        return response

    raw_body = b"".join([chunk async for chunk in response.body_iterator])
    headers = {k: v for k, v in response.headers.items() if k.lower() != "content-length"}
    try:
        content = json.loads(raw_body)
    except ValueError:
        return Response(content=raw_body, status_code=response.status_code, headers=headers)

    return JSONResponse(content=_limpar_json(content), status_code=response.status_code, headers=headers)


app.include_router(map_router, prefix="/map", tags=["Mapa"])


@app.get("/")
def root():
    return {"status": "Map Clusterization API online 🚀"}


# ============================================================
# 🚀 Execução standalone (dev)
# ============================================================

if __name__ == "__main__":
    uvicorn.run(
        "map_clusterization.api.cluster_map_api:app",
        host="0.0.0.0",
        port=8010,
        reload=True,
    )
