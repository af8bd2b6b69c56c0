from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import init_db
from .routers import (
    auth,
    content,
    quizzes,
    roadmaps,
    timers,
    users,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    print("[startup] Document store ready")
    yield


app = FastAPI(title="Atomic Sensei", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(roadmaps.router)
app.include_router(content.router)
app.include_router(quizzes.router)
app.include_router(timers.router)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    print(f"[error] {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"message": "Internal Server Error", "error": str(exc)})


@app.get("/")
async def root():
    return {"message": "Welcome to Atomic Sensei API"}


@app.get("/api/health")
async def health():
    return {"status": "ok"}
