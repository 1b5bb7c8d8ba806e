import logging
from contextlib import asynccontextmanager
from cron_jobs import scheduler

import uvicorn

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.cors import CORSMiddleware
from routers import employee, leave_management, telegram
from config import settings
from utils.app_utils import get_ledger
from utils.image_utils import STATIC_DIR

logging.basicConfig(
    level=logging.INFO,  # Set the logging level to INFO
    format='%(asctime)s - %(levelname)s - %(message)s',  # Log format
)

logger = logging.getLogger(__name__)

PROD_MODE = settings.PRODUCTION_MODE


@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_ledger().ensure_indexes()
    scheduler.start()
    logger.info("Escalation scheduler started")
    yield
    scheduler.shutdown(wait=False)


app = FastAPI(title=settings.PROJECT_TITLE, lifespan=lifespan)

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

app.include_router(employee.router, prefix="/employee", tags=["employee"])
app.include_router(leave_management.router, prefix="/leave-management", tags=["leave_management"])
app.include_router(telegram.router, prefix="/telegram", tags=["telegram"])

# Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok", "service": settings.PROJECT_TITLE}


if __name__ == "__main__":
    if PROD_MODE == True:
    # Run Uvicorn without reload in production
        uvicorn.run("main:app", host="0.0.0.0", port=11000, reload=False)

    else:
        # Run Uvicorn with reload=True in development mode
        uvicorn.run("main:app", host="0.0.0.0", port=11000, reload=True)
