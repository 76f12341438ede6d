from fastapi import FastAPI
from contextlib import asynccontextmanager
from loguru import logger

from gifty.core.logging import configure_logging
from gifty.core.settings import get_settings
from gifty.database import engine, SessionLocal
from gifty import models

SERVICE_NAME = "gifty-fulfillment"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(
        service_name=SERVICE_NAME,
        environment=settings.environment,
        version=VERSION,
        level=settings.log_level,
    )
    # Create tables
    models.Base.metadata.create_all(bind=engine)
    # Seed demo merchants and cards if asked and empty
    if settings.seed_demo_data:
        db = SessionLocal()
        try:
            count = db.query(models.Business).count()
            if count == 0:
                import subprocess
                import sys
                logger.info("Seeding demo data")
                subprocess.run([sys.executable, "scripts/seed_demo_data.py"], check=False)
        finally:
            db.close()
    logger.info("Service started", environment=settings.environment)
    yield


app = FastAPI(
    title="Gifty Checkout Fulfillment API",
    description="Delivers gift cards for completed checkout sessions, tolerating webhook lag",
    version=VERSION,
    lifespan=lifespan,
)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": SERVICE_NAME}


from gifty.routers import checkout, gifts  # noqa: E402
app.include_router(checkout.router, prefix="/api/checkout", tags=["checkout"])
app.include_router(gifts.router, prefix="/api/gift", tags=["gifts"])
