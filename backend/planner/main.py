import logging
from typing import Dict

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .learner_routes import router as learner_router
from .logging_config import configure_logging
from .plan_routes import router as plan_router


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="Study Cycle Planner", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(plan_router)
app.include_router(learner_router)

settings_snapshot = get_settings()
logger.info(
    "Planner starting with a %d-day horizon and %d allocation steps per day",
    settings_snapshot.horizon_days,
    settings_snapshot.max_daily_iterations,
)


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, object]:
    return {
        "status": "ok",
        "horizon_days": settings.horizon_days,
        "agenda_cache": settings.agenda_cache_enabled,
    }
