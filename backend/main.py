from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
import uvicorn
import logging
from contextlib import asynccontextmanager

from edurecords.core.config import settings
from edurecords.core.database import AsyncSessionLocal, engine, init_db
from edurecords.services.sync.run_state import RESTORE
from edurecords.services.sync.updater import StudentUpdateService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize database
    await init_db()

    updater = StudentUpdateService(settings, AsyncSessionLocal)
    await updater.start()
    app.state.updater = updater

    yield

    await updater.stop()
    await engine.dispose()


app = FastAPI(
    title="EduRecords Request Server",
    description="Academic record staging and ledger synchronization",
    version="1.0.0",
    lifespan=lifespan
)


@app.get("/health")
async def health_check():
    updater: StudentUpdateService = app.state.updater
    return {
        "status": "healthy",
        "ledger": type(updater.ledger).__name__,
        "updater_running": updater.scheduler.running,
        "updater_period": updater.scheduler.period,
    }


@app.post("/updater/restore", status_code=202)
async def trigger_restore():
    updater: StudentUpdateService = app.state.updater
    task = updater.trigger_restore()
    if task is None:
        raise HTTPException(status_code=409, detail="Restore already in progress")
    logger.info("Restore triggered by operator")
    return JSONResponse(status_code=202, content={"status": "started", "job": RESTORE})


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
