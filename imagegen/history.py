from sqlalchemy.orm import Session
from typing import List
from . import crud, models
from .errors import ValidationError
from .generation import resolve_user_id
from .logger import get_logger

logger = get_logger(__name__)


def list_history(db: Session, user_id=None, limit=None, offset=None) -> List[models.GeneratedImage]:
    """List a user's generations, newest first. Bad pagination values fall back to the defaults."""
    user_id = resolve_user_id(user_id)
    limit = crud.parse_limit(limit)
    offset = crud.parse_offset(offset)
    images = crud.list_images(db, user_id, limit=limit, offset=offset)
    logger.info(f"Fetched {len(images)} images for user '{user_id}' (limit={limit}, offset={offset})")
    return images


def _validate_dimension(value, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError("width and height must be positive integers")
    return value


def save_direct(db: Session, prompt, image_url, width=models.DEFAULT_WIDTH, height=models.DEFAULT_HEIGHT,
                user_id=models.ANONYMOUS_USER_ID) -> models.GeneratedImage:
    """
    Register an existing prompt/image pair without calling the provider.

    Unlike orchestrated generation, a store failure here is raised to the caller
    as PersistenceError since there is no generated image to fall back to.
    """
    if not isinstance(prompt, str) or not prompt.strip() or not isinstance(image_url, str) or not image_url.strip():
        raise ValidationError("Prompt and image_url are required")

    width = _validate_dimension(width, models.DEFAULT_WIDTH)
    height = _validate_dimension(height, models.DEFAULT_HEIGHT)
    user_id = resolve_user_id(user_id)

    image = crud.insert_image(db, prompt, image_url, width, height, user_id)
    logger.info(f"Saved image {image.id} directly for user '{user_id}'")
    return image
