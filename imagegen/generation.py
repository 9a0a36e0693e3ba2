"""
Orchestrated generation: validate the prompt, call the provider, then record the result.

Provider failures abort the request. A failed history write does not: the caller
still gets the generated image, with a warning instead of a record id.
"""

from dataclasses import dataclass
from typing import Optional
import datetime
from sqlalchemy.orm import Session
from . import crud
from .errors import GenerationFailed, PersistenceError, ProviderError, ValidationError
from .logger import get_logger
from .models import ANONYMOUS_USER_ID, DEFAULT_WIDTH, DEFAULT_HEIGHT
from .provider import BaseImageProvider

logger = get_logger(__name__)

NOT_SAVED_WARNING = "Image generated but not saved to history"


@dataclass
class GenerationResult:
    image_url: str
    prompt: str
    timestamp: datetime.datetime
    id: Optional[int] = None
    warning: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.id is not None


def validate_prompt(prompt) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("prompt required")
    return prompt


def resolve_user_id(user_id) -> str:
    if isinstance(user_id, str) and user_id.strip():
        return user_id
    return ANONYMOUS_USER_ID


def handle_generate(db: Session, provider: BaseImageProvider, prompt, user_id=None) -> GenerationResult:
    prompt = validate_prompt(prompt)
    user_id = resolve_user_id(user_id)
    logger.info(f"Starting generation for user '{user_id}' with prompt: '{prompt}'")

    try:
        image_url = provider.generate(prompt, DEFAULT_WIDTH, DEFAULT_HEIGHT)
    except ProviderError as e:
        logger.error(f"Image generation failed: {e.message} (status={e.status_code})")
        raise GenerationFailed("Failed to generate image") from e

    try:
        saved_image = crud.insert_image(db, prompt, image_url, DEFAULT_WIDTH, DEFAULT_HEIGHT, user_id)
    except PersistenceError as e:
        logger.warning(f"Generated image not saved to history: {e.message}")
        return GenerationResult(
            image_url=image_url,
            prompt=prompt,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
            warning=NOT_SAVED_WARNING
        )

    logger.info(f"Generated image {saved_image.id} saved for user '{user_id}'")
    return GenerationResult(
        image_url=image_url,
        prompt=prompt,
        timestamp=saved_image.created_at,
        id=saved_image.id
    )
