# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.errors import AppError, handle_app_error
from app.scheduler import init_scheduler, shutdown_scheduler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Collaboration service starting up...")
    if settings.SCHEDULER_ENABLED:
        init_scheduler()
    yield
    if settings.SCHEDULER_ENABLED:
        shutdown_scheduler()
    logger.info("Collaboration service shutting down...")


app = FastAPI(
    title="Collaboration Lifecycle Service",
    version="1.0.0",
    description="""
        **Host / creator collaboration ledger**

        ## Features

        * **Offers**: Send, counter, re-counter, accept, decline, withdraw and resend offers
        * **Agreements**: Rendered contracts with a two-party signature
        * **Collaborations**: Content submission and review, payment, completion
        * **Platform fees**: 15% host markup on cash deals, flat fee on post-for-stay deals
        * **Traffic bonus**: Click tracking with a one-time payable threshold
        * **Cancellation**: Request and accept-or-decline between the two parties

        ## Authentication

        Endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        The token subject is the acting host or creator id.

        Internal endpoints under `/internal/` require the `X-Internal-Api-Key` header.
        """,
    lifespan=lifespan,
)

origins = [
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, handle_app_error)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "Collaboration Lifecycle Service is running"}
