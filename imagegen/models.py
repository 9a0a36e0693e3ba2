from sqlalchemy import Column, Integer, String, DateTime, Text, CheckConstraint, Index, func
from .database import Base

ANONYMOUS_USER_ID = "anonymous"
DEFAULT_WIDTH = 1024
DEFAULT_HEIGHT = 1024


class GeneratedImage(Base):
    __tablename__ = "generated_images"
    __table_args__ = (
        CheckConstraint("length(prompt) > 0", name="ck_generated_images_prompt_not_empty"),
        CheckConstraint("length(image_url) > 0", name="ck_generated_images_image_url_not_empty"),
        CheckConstraint("width > 0 AND height > 0", name="ck_generated_images_positive_size"),
        Index("ix_generated_images_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    prompt = Column(Text, nullable=False)
    image_url = Column(Text, nullable=False)
    width = Column(Integer, nullable=False, default=DEFAULT_WIDTH)
    height = Column(Integer, nullable=False, default=DEFAULT_HEIGHT)
    # Assigned by the database clock, read back after insert
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    user_id = Column(String, nullable=False, default=ANONYMOUS_USER_ID)
