from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flowchat import __version__
from flowchat.api.routes import router
from flowchat.config import CORS_ORIGINS
from flowchat.logger import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Flowchart assistant started")
    yield


app = FastAPI(
    title="Conversational Flowchart Generator",
    version=__version__,
    lifespan=lifespan,
)

# Middleware FIRST
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes AFTER middleware
app.include_router(router)
