from fastapi import FastAPI, Request
import uvicorn
import structlog
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from db.database import create_db_and_tables
from core import errors
from core.auth import fastapi_users, auth_backend
from core.logging import configure_logging
from contextlib import asynccontextmanager
from routers.catalog import router as catalog_router
from routers.counts import router as counts_router
from routers.inbound import router as inbound_router
from routers.inventory import router as inventory_router
from routers.outbound import router as outbound_router
from routers.rules import router as rules_router
from routers.tasks import router as tasks_router
from schemas.users import UserRead, UserUpdate

logger = structlog.get_logger(__name__)

ERROR_STATUS = {
    errors.ValidationError: 400,
    errors.NotFound: 404,
    errors.OutOfStock: 409,
    errors.InsufficientStock: 409,
    errors.InvalidState: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    logger.info("Warehouse API started")
    yield


app = FastAPI(
    title="Warehouse Management API",
    description="Stock ledger, inbound/outbound fulfillment, counts and task generation",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(errors.WmsError)
async def wms_error_handler(request: Request, exc: errors.WmsError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # Two writers raced to create the same unique row; the loser retries.
    logger.warning("Integrity conflict", path=request.url.path, error=str(exc.orig))
    return JSONResponse(status_code=409, content={"error": "Conflict", "detail": "Conflicting concurrent write", "context": {}})


# Authentication routes (fastapi-users); accounts are created with scripts/create_user.py
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"],)
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Master data
app.include_router(catalog_router, tags=["catalog"])

# Ledger and fulfillment
app.include_router(inventory_router, tags=["inventory"])
app.include_router(inbound_router, prefix="/inbound-orders", tags=["inbound"])
app.include_router(outbound_router, prefix="/outbound-orders", tags=["outbound"])
app.include_router(counts_router, prefix="/inventory-counts", tags=["inventory-counts"])
app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
app.include_router(rules_router, prefix="/rules", tags=["rules"])


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
