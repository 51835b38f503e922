import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from subtracker.config import settings
from subtracker.db import Base, engine
from subtracker.routers import auth, budget, subscriptions, users
from subtracker.services.billing_calendar import InvalidCostError
from subtracker.services.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(title="SubTracker API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(subscriptions.router)
app.include_router(budget.router)


@app.exception_handler(InvalidCostError)
async def invalid_cost_handler(request: Request, exc: InvalidCostError):
    logger.warning(f"Rejected invalid cost on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


@app.get("/health")
async def health():
    return {"status": "OK"}
