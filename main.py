import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError

import advertisements
import auth
import database
import discounts
import orders
import products
import storage
from errors import register_error_handlers
from logging_config import configure_logging

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(storage.UPLOAD_ROOT, exist_ok=True)
    database.ensure_indexes()
    yield


app = FastAPI(title="Souq Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(auth.router)
app.include_router(products.router)
app.include_router(advertisements.router)
app.include_router(discounts.router)
app.include_router(orders.router)

app.mount(storage.URL_PREFIX, StaticFiles(directory=storage.UPLOAD_ROOT, check_dir=False), name="uploads")


# ----------------------- Health -----------------------
@app.get("/api/health")
def health():
    response = {
        "status": "ok",
        "database": "not configured",
        "discountCodeIndex": False,
        "uploads": {"directory": storage.UPLOAD_ROOT, "exists": os.path.isdir(storage.UPLOAD_ROOT)},
    }
    if database.db is None:
        response["status"] = "degraded"
        return response
    try:
        indexes = database.db["discount"].index_information()
    except PyMongoError as e:
        logger.warning("health_database_error", error=str(e))
        response["status"] = "degraded"
        response["database"] = "unreachable"
        return response
    response["database"] = "connected"
    response["discountCodeIndex"] = any(
        info.get("unique") and info.get("key") == [("code", 1)] for info in indexes.values()
    )
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
