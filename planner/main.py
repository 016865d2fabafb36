import os
import time
import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from . import metrics
from .pipeline import plan_router, media_router, suggestions_router

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Decor planner starting up...")
    metrics.set_gauge("start_time", time.time())
    yield
    logger.info("Decor planner shutting down...")


app = FastAPI(title="Decor Planner", lifespan=lifespan)
app.include_router(plan_router)
app.include_router(media_router)
app.include_router(suggestions_router)


@app.get("/health")
def health_check():
    """Verify the service is running and the Gemini key is configured."""
    gemini_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY", "")
    return {
        "status": "ok",
        "gemini_api_key_set": bool(gemini_key),
    }


@app.get("/metrics")
def metrics_endpoint():
    """Return a snapshot of all service metrics."""
    return metrics.get_snapshot()


if __name__ == "__main__":
    uvicorn.run("planner.main:app", host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
