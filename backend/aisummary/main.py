from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aisummary.core.config import settings
from aisummary.core.logging import configure_logging
from aisummary.api.v1 import api_v1
from aisummary.db.session import dispose_engine

configure_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    dispose_engine()   # release pooled connections on shutdown


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# dashboard origins from the environment (comma separated), e.g.
# BACKEND_CORS_ORIGINS=http://localhost:3000,https://admin.example.com
origins = settings.cors_origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,     # explicit allow-list; the storefront summary route sets its own header
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# Origin check on state-changing methods. Server-to-server callbacks (Shopify webhooks) are exempt.
TRUSTED = set(origins)
WEBHOOK_PATH_PREFIXES = (
    f"{settings.API_PREFIX}/webhooks/shopify",
)


@app.middleware("http")
async def origin_check(request: Request, call_next):
    p = request.url.path

    if p.startswith(WEBHOOK_PATH_PREFIXES):
        return await call_next(request)

    if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
        origin = request.headers.get("origin")
        # no Origin (curl, health checks): allowed
        if origin and origin not in TRUSTED:
            return JSONResponse({"detail": "Bad Origin"}, status_code=403)

    return await call_next(request)


app.include_router(api_v1, prefix=settings.API_PREFIX)


# root liveness probe (Docker health check)
@app.get("/")
def root():
    return {
        "app": settings.PROJECT_NAME,
        "env": settings.ENVIRONMENT,
        "ok": True
    }
