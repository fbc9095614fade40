import os
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, text
from loguru import logger

from app.core.config import settings
from app.db.core import get_session
from app.utils.file_storage import UPLOAD_DIR

router = APIRouter()


@router.get("/", status_code=status.HTTP_200_OK)
def index():
    return {"status": "API is running", "service": settings.app_name}


@router.get("/readiness", status_code=status.HTTP_200_OK)
def readiness_check(session: Session = Depends(get_session)):
    """Database ping plus a check that submission uploads can be stored."""
    try:
        session.exec(text("SELECT 1"))
    except Exception:
        logger.exception("Database readiness check failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not ready"
        )

    try:
        os.makedirs(UPLOAD_DIR, exist_ok=True)
    except OSError:
        logger.exception(f"Upload directory {UPLOAD_DIR} is not writable")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Upload storage not ready"
        )

    return {"status": "ready", "database": "online", "uploads": "online"}
