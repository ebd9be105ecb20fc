"""Settings API router."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from deepdive.database import get_db
from deepdive.schemas.settings import AppSettings
from deepdive.services.app_settings import load_app_settings, save_app_settings

router = APIRouter()


@router.get("/settings", response_model=AppSettings)
def get_settings(db: Session = Depends(get_db)):
    """Persisted settings, or defaults when none are stored."""
    return load_app_settings(db)


@router.put("/settings", response_model=AppSettings)
def update_settings(payload: AppSettings, db: Session = Depends(get_db)):
    """Replace the stored settings."""
    try:
        return save_app_settings(db, payload)
    except Exception as exc:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to save settings: {exc}")
