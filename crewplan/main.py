import logging

from fastapi import FastAPI
from crewplan.api.routes import schedule, shifts
from crewplan.core.config import settings

logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)

app = FastAPI(title="CrewPlan API", version="0.1.0")

app.include_router(schedule.router, prefix="/api/v1")
app.include_router(shifts.router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "ok"}
