import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.routes import registry, router
from utils.env_loader import load_environments


load_environments()
logging.basicConfig(
    level=os.getenv("SQLWEB_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    registry.close_all()


app = FastAPI(
    title="SQLWeb API",
    version="0.1.0",
    description="Browse, edit and export MySQL, PostgreSQL and SQLite databases",
    lifespan=lifespan,
)
app.include_router(router)
