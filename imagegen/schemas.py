from pydantic import BaseModel, Field
import datetime
from typing import Any, List, Optional

from .models import DEFAULT_WIDTH, DEFAULT_HEIGHT

class GenerationRecord(BaseModel):
    id: int
    prompt: str
    image_url: str
    width: int
    height: int
    created_at: datetime.datetime
    user_id: str

    class Config:
        from_attributes = True

# Request bodies keep prompt/image_url loosely typed so that the services,
# not pydantic, decide what counts as a missing or invalid value.
class GenerateImageRequest(BaseModel):
    prompt: Any = None
    user_id: Optional[str] = None

class SaveImageRequest(BaseModel):
    prompt: Any = None
    image_url: Any = None
    width: Optional[int] = DEFAULT_WIDTH
    height: Optional[int] = DEFAULT_HEIGHT
    user_id: Optional[str] = None

class GenerateImageResponse(BaseModel):
    image_url: str = Field(..., alias="imageUrl")
    prompt: str
    timestamp: datetime.datetime
    id: Optional[int] = None
    warning: Optional[str] = None

    class Config:
        populate_by_name = True

class ImageListResponse(BaseModel):
    images: List[GenerationRecord]

class ImageResponse(BaseModel):
    image: GenerationRecord
