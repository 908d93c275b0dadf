import os
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import check_connection, engine, Base
from app.api.v1.router import api_router

from app.db.models import building, raw_data, room, schedule

from contextlib import asynccontextmanager

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        check_connection()
        logger.info("✅ Database connection established.")

        logger.info("Checking tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("✅ Tables checked / created.")
    except SQLAlchemyError as e:
        logger.error(f"❌ SQLAlchemy error: {e}")
        raise e
    except Exception as e:
        logger.error(f"❌ Error connecting to the database: {e}")
        raise e

    yield

    try:
        engine.dispose()
        logger.info("🧹 Database connection closed.")
    except Exception as e:
        logger.error(f"⚠️ Error closing connection: {e}")


# ======================================================
# Application
# ======================================================

app = FastAPI(title="Room Checker", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "Room Checker API active ✅"}


if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
