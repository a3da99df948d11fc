import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    horizon_days: int = Field(90, ge=1, alias="PLANNER_HORIZON_DAYS")
    max_daily_iterations: int = Field(500, ge=1, alias="PLANNER_MAX_DAILY_ITERATIONS")
    exam_minutes_per_question: int = Field(3, ge=0, alias="PLANNER_EXAM_MINUTES_PER_QUESTION")
    exam_min_remaining_minutes: int = Field(60, ge=0, alias="PLANNER_EXAM_MIN_REMAINING_MINUTES")
    default_level: Literal["beginner", "intermediate", "advanced"] = Field(
        "beginner",
        alias="PLANNER_DEFAULT_LEVEL",
    )
    agenda_cache_enabled: bool = Field(True, alias="PLANNER_AGENDA_CACHE")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid planner configuration: {exc}") from exc
