"""FastAPI application for Contemplation."""

import contextlib

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contemplation.core.logging import configure_logging

from .routes import agents_router, extraction_router


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    configure_logging()
    yield


app = FastAPI(
    title="Contemplation API",
    description="Knowledge gap extraction and multi-pass contemplation",
    version="0.1.0",
    lifespan=lifespan,
)

# Local host runtimes and dashboards only
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(extraction_router)
app.include_router(agents_router)


@app.get("/")
def root() -> dict:
    """Root endpoint."""
    return {"message": "Contemplation API", "version": "0.1.0"}


@app.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}
