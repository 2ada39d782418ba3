import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from errors import QuizSessionError

# Routers
from routers.admin import router as admin_router
from routers.health import router as health_router
from routers.results import router as results_router
from routers.sessions import router as sessions_router

logger = logging.getLogger("quiz-sessions")
logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Quiz Sessions API")

_DEFAULT_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"
CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", _DEFAULT_ORIGINS).split(",") if o.strip()
]

# Allow calls from the single-page frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*", "x-api-key", "x-admin-token", "x-student-id"],
)


@app.exception_handler(QuizSessionError)
async def quiz_session_error_handler(request: Request, exc: QuizSessionError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.reason)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.get("/")
def health_root():
    return {"ok": True}


app.include_router(sessions_router)  # /quizzes/{id}/session/..., /quizzes/{id}/attempts
app.include_router(results_router)  # /results/...
app.include_router(admin_router)  # /admin/...
app.include_router(health_router)  # /health/...
