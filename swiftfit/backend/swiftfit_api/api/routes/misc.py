import logging
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ...db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["misc"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return {"status": "degraded", "database": "unavailable"}
    return {"status": "ok", "database": "ok"}
