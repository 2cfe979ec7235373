import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from database import init_models
from league.router import router as league_router


def _configure_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


_configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("Database ready")
    yield


app = FastAPI(title="Tennis League", lifespan=lifespan)
app.include_router(league_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
