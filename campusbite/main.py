import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from campusbite.config import settings
from campusbite.database import engine, AsyncSessionLocal
from campusbite.infrastructure.db_schema import metadata
from campusbite.infrastructure.seed import seed_menu
from campusbite.infrastructure.unit_of_work import UnitOfWork
from campusbite.presentation.api import router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Tables ready")
    except Exception as e:
        logger.error(f"Could not create tables: {e}")

    if settings.SEED_MENU:
        await seed_menu(UnitOfWork(AsyncSessionLocal))

    yield

    await engine.dispose()
    logger.info("Application stopped")


app = FastAPI(
    title="CampusBite Order Service",
    description="Campus food ordering: cart, checkout and order lifecycle",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "CampusBite order service is running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
