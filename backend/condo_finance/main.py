import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from condo_finance.api import delinquency, finance, indicators, maintenance
from condo_finance.core.errors import AppError, StoreError, error_response
from condo_finance.db.database import init_db
from condo_finance.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    logger.info("Condominium finance API started")
    yield


app = FastAPI(
    title="Condominium Finance API",
    description="Livro-caixa, inadimplência e manutenções de condomínios",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}")
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Unhandled store failure on {request.method} {request.url.path}")
    error = StoreError()
    return JSONResponse(status_code=error.http_status, content=error_response(error))


app.include_router(finance.router, prefix="/api/finance", tags=["finance"])
app.include_router(delinquency.router, prefix="/api/delinquency", tags=["delinquency"])
app.include_router(maintenance.router, prefix="/api/maintenance", tags=["maintenance"])
app.include_router(indicators.router, prefix="/api/indicators", tags=["indicators"])


@app.get("/health")
def health_check():
    return {"status": "ok", "version": "0.1.0"}
