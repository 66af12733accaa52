from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict

from dotenv import load_dotenv

# Ensure we load the repo-level .env before settings are read
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env", override=False)

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from learning_service import models  # noqa: F401  (register models)
from learning_service.database import init_db
from routes.auth import router as auth_router
from routes.comprehension import router as comprehension_router
from routes.courses import router as courses_router
from routes.quiz import router as quiz_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="LearnAI Course Engine",
    description="Turns a syllabus or video into an AI-generated course with adaptive quizzes.",
    version="0.1.0",
)
app.add_middleware(
    SessionMiddleware,
    secret_key=os.getenv("SECRET_KEY", "default_fallback_secret_key_if_not_set"),
)
app.include_router(auth_router)
app.include_router(courses_router)
app.include_router(quiz_router)
app.include_router(comprehension_router)


@app.on_event("startup")
async def on_startup():
    await init_db()
    logger.info("Database initialised")


@app.get("/health", tags=["system"])
def health_check() -> Dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
