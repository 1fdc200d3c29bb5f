from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from constants import LOG_FILE, LOG_LEVEL
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router
from schemas.rooms import StorageInfoResponse
from storage import Storage, get_storage

setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI(title="Ephemeral Rooms")

# Room links are shared freely, so any origin may call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)

logger.info("FastAPI application initialized")


@app.get("/api/storage", response_model=StorageInfoResponse)
async def storage_info(storage: Storage = Depends(get_storage)):
    """Report which backend is serving requests."""
    return StorageInfoResponse(type=await storage.get_storage_type())


@app.get("/health")
async def health():
    return {"status": "ok"}
