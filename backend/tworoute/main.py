import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tworoute.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "tworoute.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from tworoute.routers import transfers
from tworoute.services.cache_service import create_route_cache
from tworoute.services.transfer.composer import TransferComposer
from tworoute.services.transport_provider import TransportProvider

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    provider = TransportProvider()
    cache = create_route_cache(settings)
    app.state.provider = provider
    app.state.cache = cache
    app.state.composer = TransferComposer(
        provider,
        cache,
        strategy_timeout=settings.strategy_timeout_seconds,
    )
    mode = "mock" if provider.is_mock else settings.transport_provider_base_url
    logger.info(f"Transfer composer ready (provider: {mode}, cache: {settings.route_cache_backend})")

    yield

    # Shutdown
    await provider.close()
    await cache.close()
    logger.info("Transfer composer stopped")


app = FastAPI(
    title="TwoRoute",
    description="Primary and backup transfer routes between two points",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(transfers.router, prefix="/api/transfers", tags=["transfers"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "tworoute"}
