"""Access to persisted application settings."""
import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy.orm import Session

from deepdive.models.app_settings import AppSettings as AppSettingsModel
from deepdive.schemas.settings import AppSettings as AppSettingsSchema

logger = logging.getLogger(__name__)


def load_app_settings(db: Session) -> AppSettingsSchema:
    """Return persisted settings, or defaults when missing or invalid."""
    record = db.query(AppSettingsModel).first()
    if record:
        try:
            return AppSettingsSchema.model_validate(record.settings_json or {})
        except ValidationError as e:
            logger.warning("Stored settings are invalid, using defaults: %s", e)
            return AppSettingsSchema()
    return AppSettingsSchema()


def save_app_settings(db: Session, payload: AppSettingsSchema) -> AppSettingsSchema:
    """Upsert the single settings row."""
    settings_json = payload.model_dump(mode="json")
    record = db.query(AppSettingsModel).first()
    if record is None:
        db.add(AppSettingsModel(id=1, settings_json=settings_json, updated_at=datetime.utcnow()))
    else:
        record.settings_json = settings_json
        record.updated_at = datetime.utcnow()
    db.commit()
    logger.info("Saved application settings")
    return payload
