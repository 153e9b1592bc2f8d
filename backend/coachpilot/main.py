"""
CoachPilot AI - FastAPI Application

Main entry point for the CoachPilot backend API.
Serves insights, goal suggestions, profile data and body-composition
tracking to the dashboard.
"""

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from coachpilot import __version__
from coachpilot.config import get_settings
from coachpilot.core.engine import CoachingEngine, build_engine
from coachpilot.core.models import (
    BodyCompositionGoals,
    BodyMetrics,
    InsightCategory,
    InsightPriority,
    SuggestionCategory,
    SuggestionPriority,
    UserDataProfile,
    UserGoalPreferences,
    utc_now,
)

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@lru_cache
def get_engine() -> CoachingEngine:
    """Process-wide engine on the configured storage backend."""
    return build_engine(get_settings())


# === Lifespan Management ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    settings = get_settings()

    # Startup
    logger.info("🚀 Starting CoachPilot AI Backend")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Storage: {settings.storage_path or 'in-memory'}")

    if settings.opik_api_key:
        try:
            import opik
            opik.configure(api_key=settings.opik_api_key)
            logger.info(f"📊 Opik tracing enabled - Project: {settings.opik_project_name}")
        except Exception as e:
            logger.warning(f"⚠️ Opik initialization failed: {e}")

    yield

    # Shutdown
    logger.info("👋 Shutting down CoachPilot AI Backend")


# === FastAPI Application ===
app = FastAPI(
    title="CoachPilot AI",
    description="Fitness insight and goal recommendation engine",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Response Models ===
class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    storage: str


# === Endpoints ===
@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "CoachPilot AI",
        "version": __version__,
        "description": "Fitness insight and goal recommendation engine",
        "docs_url": "/docs",
    }


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint for monitoring."""
    settings = get_settings()
    return HealthResponse(
        status="ok",
        timestamp=utc_now().isoformat(),
        version=__version__,
        storage="json_file" if settings.uses_persistent_storage else "memory",
    )


# === Insight Endpoints ===

@app.get("/insights", tags=["insights"])
def list_insights(
    category: Optional[InsightCategory] = None,
    priority: Optional[InsightPriority] = None,
    engine: CoachingEngine = Depends(get_engine),
):
    """Stored insights, optionally filtered by category and/or priority."""
    if category:
        insights = engine.insights.by_category(category)
    else:
        insights = engine.insights.all()
    if priority:
        insights = [i for i in insights if i.priority == priority]
    return {"insights": [i.model_dump(mode="json") for i in insights], "total": len(insights)}


@app.get("/insights/summary", tags=["insights"])
def insight_summary(engine: CoachingEngine = Depends(get_engine)):
    """Counts per category and priority for the dashboard statistics panel."""
    return engine.insights.summary().model_dump()


@app.post("/insights/generate", tags=["insights"])
def generate_insights(
    profile: Optional[UserDataProfile] = Body(default=None),
    engine: CoachingEngine = Depends(get_engine),
):
    """
    Clear expired insights and generate a new batch.

    Without a request body the stored (or fallback) user profile is used.
    """
    insights = engine.refresh_insights(profile)
    return {"insights": [i.model_dump(mode="json") for i in insights], "total": len(insights)}


@app.delete("/insights/expired", tags=["insights"])
def clear_expired_insights(engine: CoachingEngine = Depends(get_engine)):
    removed = engine.clear_expired_insights()
    return {"removed": removed}


# === Profile Endpoints ===

@app.get("/profile", tags=["profile"])
def get_profile(engine: CoachingEngine = Depends(get_engine)):
    """Current user data profile (stored overrides or fallback snapshot)."""
    return engine.profile_provider.get_profile().model_dump(mode="json")


@app.patch("/profile", tags=["profile"])
def update_profile(
    updates: dict[str, Any] = Body(...),
    engine: CoachingEngine = Depends(get_engine),
):
    try:
        profile = engine.profile_provider.update_profile(updates)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid profile update: {e}")
    return profile.model_dump(mode="json")


# === Goal Suggestion Endpoints ===

@app.get("/suggestions", tags=["suggestions"])
def list_suggestions(
    category: Optional[SuggestionCategory] = None,
    priority: Optional[SuggestionPriority] = None,
    engine: CoachingEngine = Depends(get_engine),
):
    if category:
        suggestions = engine.suggestions.by_category(category)
    else:
        suggestions = engine.suggestions.all()
    if priority:
        suggestions = [s for s in suggestions if s.priority == priority]
    return {
        "suggestions": [s.model_dump(mode="json") for s in suggestions],
        "total": len(suggestions),
    }


@app.post("/suggestions/generate", tags=["suggestions"])
def generate_suggestions(
    preferences: Optional[UserGoalPreferences] = Body(default=None),
    engine: CoachingEngine = Depends(get_engine),
):
    """Generate goal suggestions from the given or stored goal preferences."""
    suggestions = engine.generate_goal_suggestions(preferences)
    return {
        "suggestions": [s.model_dump(mode="json") for s in suggestions],
        "total": len(suggestions),
    }


@app.post("/suggestions/{suggestion_id}/accept", tags=["suggestions"])
def accept_suggestion(suggestion_id: str, engine: CoachingEngine = Depends(get_engine)):
    """Accept a suggestion; it leaves the suggestion list and is returned as the new goal."""
    suggestion = engine.accept_suggestion(suggestion_id)
    if not suggestion:
        if engine.suggestions.get(suggestion_id):
            raise HTTPException(status_code=503, detail=f"Suggestion {suggestion_id} could not be removed")
        raise HTTPException(status_code=404, detail=f"Suggestion {suggestion_id} not found")
    return suggestion.model_dump(mode="json")


@app.post("/suggestions/{suggestion_id}/dismiss", tags=["suggestions"])
def dismiss_suggestion(suggestion_id: str, engine: CoachingEngine = Depends(get_engine)):
    dismissed = engine.dismiss_suggestion(suggestion_id)
    return {"dismissed": dismissed}


@app.get("/preferences", tags=["suggestions"])
def get_preferences(engine: CoachingEngine = Depends(get_engine)):
    return engine.preferences.get_preferences().model_dump(mode="json")


@app.patch("/preferences", tags=["suggestions"])
def update_preferences(
    updates: dict[str, Any] = Body(...),
    engine: CoachingEngine = Depends(get_engine),
):
    try:
        preferences = engine.preferences.update_preferences(updates)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid preferences update: {e}")
    return preferences.model_dump(mode="json")


# === Body Composition Endpoints ===

@app.get("/body-composition/measurements", tags=["body-composition"])
def list_measurements(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    engine: CoachingEngine = Depends(get_engine),
):
    """Measurement history, optionally limited to a YYYY-MM-DD date range."""
    service = engine.body_composition
    if start_date or end_date:
        measurements = service.get_measurements_by_date_range(
            start_date or "0000-00-00", end_date or "9999-12-31"
        )
    else:
        measurements = service.get_all_measurements()
    return {
        "measurements": [m.model_dump(mode="json") for m in measurements],
        "total": len(measurements),
    }


@app.post("/body-composition/measurements", tags=["body-composition"])
def add_measurement(metrics: BodyMetrics, engine: CoachingEngine = Depends(get_engine)):
    record = engine.body_composition.save_measurement(metrics)
    return record.model_dump(mode="json")


@app.delete("/body-composition/measurements/{measurement_id}", tags=["body-composition"])
def delete_measurement(measurement_id: str, engine: CoachingEngine = Depends(get_engine)):
    if engine.body_composition.delete_measurement(measurement_id):
        return {"message": "Measurement deleted"}
    raise HTTPException(status_code=404, detail="Measurement not found")


@app.get("/body-composition/goals", tags=["body-composition"])
def get_body_goals(engine: CoachingEngine = Depends(get_engine)):
    return engine.body_composition.get_goals().model_dump(mode="json")


@app.put("/body-composition/goals", tags=["body-composition"])
def save_body_goals(goals: BodyCompositionGoals, engine: CoachingEngine = Depends(get_engine)):
    engine.body_composition.save_goals(goals)
    logger.info(f"Saved body-composition goals: {goals.model_dump(exclude_none=True)}")
    return goals.model_dump(mode="json")


@app.get("/body-composition/progress", tags=["body-composition"])
def get_body_progress(engine: CoachingEngine = Depends(get_engine)):
    """Progress percentage per goal metric."""
    return {"progress": engine.body_composition.calculate_progress()}


# === Run with Uvicorn ===
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "coachpilot.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
