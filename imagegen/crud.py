from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List
import re
from . import models
from .errors import PersistenceError
from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 50
DEFAULT_OFFSET = 0
# Largest value a bigint LIMIT/OFFSET bind accepts
MAX_PAGINATION_VALUE = 2 ** 63 - 1

_INTEGER_PATTERN = re.compile(r"[+-]?\d+")


def _parse_int(value):
    """Return value as an int, or None when it is absent or not numeric"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    # int() also takes "1_000" and non-ASCII digits
    if not text.isascii() or not _INTEGER_PATTERN.fullmatch(text):
        return None
    # Anything longer than a bigint is out of range anyway, and int() refuses very long digit strings
    if len(text.lstrip("+-").lstrip("0")) > len(str(MAX_PAGINATION_VALUE)):
        return -1 if text.startswith("-") else MAX_PAGINATION_VALUE
    return int(text)


def parse_limit(value) -> int:
    # Zero, negative and non-numeric limits all fall back to the default
    limit = _parse_int(value)
    if not limit or limit < 0:
        return DEFAULT_LIMIT
    return min(limit, MAX_PAGINATION_VALUE)


def parse_offset(value) -> int:
    offset = _parse_int(value)
    if not offset or offset < 0:
        return DEFAULT_OFFSET
    return min(offset, MAX_PAGINATION_VALUE)


def insert_image(db: Session, prompt: str, image_url: str, width: int, height: int, user_id: str) -> models.GeneratedImage:
    """Insert a generation record and return it with its store-assigned id and created_at"""
    db_image = models.GeneratedImage(
        prompt=prompt,
        image_url=image_url,
        width=width,
        height=height,
        user_id=user_id
    )
    try:
        db.add(db_image)
        db.commit()
        db.refresh(db_image)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to insert generated image for user '{user_id}': {e}")
        raise PersistenceError("Failed to save image") from e
    return db_image


def list_images(db: Session, user_id: str, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> List[models.GeneratedImage]:
    """Most recent first. An empty history is an empty list, not an error."""
    try:
        return (
            db.query(models.GeneratedImage)
            .filter(models.GeneratedImage.user_id == user_id)
            .order_by(models.GeneratedImage.created_at.desc(), models.GeneratedImage.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to list generated images for user '{user_id}': {e}")
        raise PersistenceError("Failed to fetch images") from e
