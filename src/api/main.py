"""
FastAPI application entry point.

Exposes job definitions, execution logs and watcher management over HTTP.
Optional API key authentication.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from src import __version__
from src.scheduler import SchedulerConfig

from .routers import jobs
from ._scheduler_state import init_scheduler_service, shutdown_scheduler_service
from .dependencies.auth import verify_api_key

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown of resources:
    - Scheduler core service with its periodic log retention sweep
    """
    # Startup
    config = SchedulerConfig.from_env()
    init_scheduler_service(config)
    logger.info(f"Scheduler API started (db={config.db_path})")

    yield

    # Shutdown - stops the sweep and runs a final retention cleanup
    shutdown_scheduler_service()

# Tag metadata for Swagger UI
tags_metadata = [
    {
        "name": "jobs",
        "description": "Job definitions, execution logs and watcher e-mail addresses",
    },
]

app = FastAPI(
    title="Job Scheduler API",
    lifespan=lifespan,
    description="""
## Job Scheduler API

Job definitions, execution history and transition notifications.

### Authentication
When `API_AUTH_ENABLED=true`, all endpoints except `/health` require
an `X-API-Key` header matching the `API_KEY` environment variable.

### Usage
```bash
# Start server
uvicorn src.api.main:app --host 127.0.0.1 --port 8000

# Register a job
curl -X POST http://localhost:8000/jobs \\
  -H "Content-Type: application/json" \\
  -d '{"name": "nightly-report", "expression": "0 0 2 * * ?", "handler": "reports/nightly.js"}'
```
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=tags_metadata,
)

# Health check - NO authentication (operational endpoint)
@app.get("/health")
async def health_check():
    """Health check endpoint. Not authenticated."""
    return {"status": "ok", "version": __version__}


app.include_router(
    jobs.router, prefix="/jobs", tags=["jobs"], dependencies=[Depends(verify_api_key)]
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
