from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from loan_app.core.config import settings
from loan_app.core.exceptions import LoanAppError
from loan_app.core.logging import get_logger, setup_logging

import loan_app.models  # ensure models are registered
from loan_app.utils.database import engine, Base

from loan_app.routers import (
    loans_router,
    customers_router,
    emi_utility_router,
    expenses_router,
)

setup_logging(settings.log_level, settings.log_format)
logger = get_logger("loan_app")

app = FastAPI(title="Loan & EMI Backend API", version="1.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(loans_router.router)
app.include_router(customers_router.router)
app.include_router(emi_utility_router.router)
app.include_router(expenses_router.router)


@app.exception_handler(LoanAppError)
def loan_app_error_handler(request: Request, exc: LoanAppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.on_event("startup")
def on_startup():
    # no migrations yet; create missing tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


@app.get("/")
def root():
    return {"message": "Loan & EMI backend is running!!"}
