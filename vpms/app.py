from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Generator

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from vpms import repository
from vpms.config import get_settings
from vpms.db import get_session, init_db
from vpms.errors import VentureError
from vpms.metrics import compute_metrics
from vpms.schemas import DeleteResult, MetricsOut, ServiceInfo, VentureOut

log = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


settings = get_settings()

app = FastAPI(
    title="VPMS",
    version="0.1.0",
    description=(
        "Venture pipeline management API. Track ventures from intake through "
        "diagnostics and readiness to capital facilitation. "
        "All endpoints return JSON. No authentication required."
    ),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Ventures", "description": "Create, list, update and delete ventures."},
        {"name": "Metrics", "description": "Portfolio-level statistics."},
        {"name": "Health", "description": "Service liveness."},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=not settings.allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


# ---------------------------------------------------------------------------
# Dependencies & Error handlers
# ---------------------------------------------------------------------------


def db_session() -> Generator[Session, None, None]:
    session = get_session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@app.exception_handler(VentureError)
async def venture_error_handler(request: Request, exc: VentureError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    if first.get("loc", ())[:1] == ("body",):
        message = "request body must be a JSON object"
    else:
        where = ".".join(str(p) for p in first.get("loc", ()))
        message = f"{where}: {first.get('msg', 'invalid request')}"
    return JSONResponse({"error": message}, status_code=400)


# ---------------------------------------------------------------------------
# Routes: Health
# ---------------------------------------------------------------------------


@app.get("/", response_model=ServiceInfo, tags=["Health"], summary="Service liveness check")
async def root():
    return ServiceInfo(service=get_settings().service_name)


# ---------------------------------------------------------------------------
# Routes: Ventures
# ---------------------------------------------------------------------------


@app.get("/api/ventures", response_model=list[VentureOut],
         tags=["Ventures"], summary="List all ventures, most recently updated first")
async def list_ventures(session: Session = Depends(db_session)):
    return [VentureOut.model_validate(v) for v in repository.list_ventures(session)]


@app.get("/api/ventures/{venture_id}", response_model=VentureOut,
         tags=["Ventures"], summary="Get a single venture")
async def get_venture(venture_id: int, session: Session = Depends(db_session)):
    return VentureOut.model_validate(repository.get_venture(session, venture_id))


@app.post("/api/ventures", response_model=VentureOut, status_code=201,
          tags=["Ventures"], summary="Create a venture")
async def create_venture(body: dict[str, Any], session: Session = Depends(db_session)):
    return VentureOut.model_validate(repository.create_venture(session, body))


@app.put("/api/ventures/{venture_id}", response_model=VentureOut,
         tags=["Ventures"], summary="Update venture fields (partial update)")
async def update_venture(venture_id: int, body: dict[str, Any], session: Session = Depends(db_session)):
    return VentureOut.model_validate(repository.update_venture(session, venture_id, body))


@app.delete("/api/ventures/{venture_id}", response_model=DeleteResult,
            tags=["Ventures"], summary="Delete a venture")
async def delete_venture(venture_id: int, session: Session = Depends(db_session)):
    return DeleteResult(id=repository.delete_venture(session, venture_id))


# ---------------------------------------------------------------------------
# Routes: Metrics
# ---------------------------------------------------------------------------


@app.get("/api/metrics", response_model=MetricsOut,
         tags=["Metrics"], summary="Portfolio totals, average readiness and capital facilitated")
async def get_metrics(session: Session = Depends(db_session)):
    return MetricsOut.model_validate(compute_metrics(session))


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def main():
    import uvicorn
    uvicorn.run("vpms.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
