import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from print_costing.api import costing, currency, settings
from print_costing.api.deps import get_parameter_store
from print_costing.errors import CostingError

logger = logging.getLogger(__name__)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app = FastAPI(title="Print Costing Engine")

# CORS for frontend dev
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(costing.router, prefix="/cost", tags=["cost"])
app.include_router(currency.router, prefix="/currency", tags=["currency"])
app.include_router(settings.router, prefix="/settings", tags=["settings"])


@app.exception_handler(CostingError)
async def costing_error_handler(request: Request, exc: CostingError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.kind, request.url.path, exc.message)
    else:
        logger.warning("%s on %s: %s", exc.kind, request.url.path, exc.message)
    body = {"error": exc.message, "kind": exc.kind, "status": exc.status_code}
    issues = getattr(exc, "issues", None)
    if issues:
        body["issues"] = issues
    return JSONResponse(body, status_code=exc.status_code)


@app.on_event("startup")
def on_startup():
    store = get_parameter_store()
    create_schema = getattr(store, "create_schema", None)
    if create_schema is not None:
        create_schema()


@app.get("/")
async def root():
    return {"status": "ok", "service": "print-costing-engine"}
