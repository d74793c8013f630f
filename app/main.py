import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import get_settings
from app.routers import assistant, auth, messages, storage, subscriptions, users, videos

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting Lessons API (storage=%s)", settings.storage_backend)
    yield


app = FastAPI(title="Lessons API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(videos.router)
app.include_router(storage.router)
app.include_router(subscriptions.router)
app.include_router(users.router)
app.include_router(assistant.router)
app.include_router(messages.router)


@app.get("/")
def root():
    return {"message": "Lessons API", "docs": "/docs"}
