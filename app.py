from dotenv import load_dotenv

# Load .env before the imagegen modules read their configuration
load_dotenv()

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
from imagegen import models, schemas, database, generation, history
from imagegen.errors import GenerationFailed, PersistenceError, ValidationError
from imagegen.provider import BaseImageProvider, get_provider
from imagegen.logger import logger

import os

app = FastAPI(title="Image Generation History API")

# Environment-aware CORS configuration
ENVIRONMENT = os.environ.get("ENVIRONMENT", "production")

if ENVIRONMENT == "preview":
    allowed_origins = ["*"]
else:
    allowed_origins = [
        origin.strip()
        for origin in os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False if ENVIRONMENT == "preview" else True,  # Can't use credentials with allow_origins=["*"]
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are caller errors, reported as 400 rather than 422"""
    logger.warning(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Errors raised outside the routes' own handling, e.g. in a dependency, get the generic JSON body"""
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

@app.on_event("startup")
def startup_event():
    # Fail at boot on a misconfigured provider rather than on the first request
    provider = get_provider()
    logger.info(f"Image provider: {provider.provider_name}")
    models.Base.metadata.create_all(bind=database.engine)
    logger.info(f"Startup complete - environment: {ENVIRONMENT}")

@app.get("/health")
@app.head("/health")
def health_check():
    """Health check endpoint for monitoring and load balancers"""
    return {"status": "ok", "message": "Service is running"}

@app.post("/api/generate-image", response_model=schemas.GenerateImageResponse, response_model_exclude_none=True)
def generate_image_endpoint(
    generate_request: schemas.GenerateImageRequest,
    db: Session = Depends(database.get_db),
    provider: BaseImageProvider = Depends(get_provider),
):
    try:
        result = generation.handle_generate(db, provider, generate_request.prompt, user_id=generate_request.user_id)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Prompt is required and must be a string")
    except GenerationFailed as e:
        raise HTTPException(status_code=502, detail=e.message)
    except Exception:
        logger.exception("Image generation error")
        raise HTTPException(status_code=500, detail="Internal server error")

    return schemas.GenerateImageResponse(
        image_url=result.image_url,
        prompt=result.prompt,
        timestamp=result.timestamp,
        id=result.id,
        warning=result.warning,
    )

@app.get("/api/images", response_model=schemas.ImageListResponse)
def list_images_endpoint(
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    user_id_snake: Optional[str] = Query(None, alias="user_id"),
    db: Session = Depends(database.get_db),
):
    """List generation history, newest first"""
    try:
        images = history.list_history(db, user_id=user_id or user_id_snake, limit=limit, offset=offset)
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Failed to fetch images")
    except Exception:
        logger.exception("Error fetching images")
        raise HTTPException(status_code=500, detail="Internal server error")

    return {"images": images}

@app.post("/api/images", response_model=schemas.ImageResponse)
def save_image_endpoint(save_request: schemas.SaveImageRequest, db: Session = Depends(database.get_db)):
    """Save an already generated image to history without calling the provider"""
    try:
        image = history.save_direct(
            db,
            save_request.prompt,
            save_request.image_url,
            width=save_request.width,
            height=save_request.height,
            user_id=save_request.user_id,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Failed to save image")
    except Exception:
        logger.exception("Error saving image")
        raise HTTPException(status_code=500, detail="Internal server error")

    return {"image": image}
