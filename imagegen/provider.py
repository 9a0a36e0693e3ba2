"""
Image generation provider client
Sends a prompt to the external text-to-image endpoint and returns the image URL
"""

from abc import ABC, abstractmethod
from urllib.parse import quote
from typing import Optional
import httpx
import os
from .errors import ProviderError, ProviderResponseError
from .logger import get_logger

logger = get_logger(__name__)

IMAGE_PROVIDER = os.environ.get("IMAGE_PROVIDER", "stable-diffusion")
IMAGE_PROVIDER_URL = os.environ.get("IMAGE_PROVIDER_URL", "http://localhost:8080/integrations/stable-diffusion-v-3/")
IMAGE_PROVIDER_API_KEY = os.environ.get("IMAGE_PROVIDER_API_KEY")
# Unset means no timeout: a slow provider is allowed to take as long as it needs
IMAGE_PROVIDER_TIMEOUT = os.environ.get("IMAGE_PROVIDER_TIMEOUT")


class BaseImageProvider(ABC):
    """Abstract base class for image generation providers"""

    provider_name = "base"

    @abstractmethod
    def generate(self, prompt: str, width: int, height: int) -> str:
        """
        Generate a single image for the prompt

        Args:
            prompt (str): The text prompt
            width (int): Requested width in pixels
            height (int): Requested height in pixels

        Returns:
            str: Reference (URL or URI) to the generated image

        Raises:
            ProviderError: If the provider is unreachable or returns a non-success status
            ProviderResponseError: If the response holds no usable image reference
        """
        pass


class StableDiffusionProvider(BaseImageProvider):
    """Client for the Stable Diffusion integration endpoint"""

    provider_name = "stable-diffusion"

    def __init__(self, base_url: str = None, api_key: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url or IMAGE_PROVIDER_URL
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def build_url(self, prompt: str, width: int, height: int) -> str:
        separator = "&" if "?" in self.base_url else "?"
        return f"{self.base_url}{separator}prompt={quote(prompt, safe='')}&width={width}&height={height}"

    def generate(self, prompt: str, width: int, height: int) -> str:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        url = self.build_url(prompt, width, height)
        logger.info(f"Requesting {width}x{height} image from {self.provider_name}")

        # One client per request, nothing shared between concurrent generations
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(url, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Failed to connect to {self.provider_name}: {e}")
            raise ProviderError(f"Failed to connect to image provider: {str(e)}") from e

        if not response.is_success:
            logger.error(f"{self.provider_name} API error: {response.status_code} {response.reason_phrase}")
            raise ProviderError(
                f"Image provider error (HTTP {response.status_code})",
                status_code=response.status_code
            )

        try:
            image_data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from {self.provider_name}: {response.text[:200]}")
            raise ProviderResponseError("Image provider returned invalid response format.") from e

        data = image_data.get("data") if isinstance(image_data, dict) else None
        if not data or not isinstance(data, list) or not isinstance(data[0], str) or not data[0]:
            logger.error(f"Invalid response from {self.provider_name}: {image_data}")
            raise ProviderResponseError("No image generated")

        return data[0]


def get_provider() -> BaseImageProvider:
    """
    Factory for the configured image provider. Used as a FastAPI dependency.

    Raises:
        ValueError: If the configured provider is not supported or the timeout is not a number
    """
    provider_name = IMAGE_PROVIDER.lower()

    if provider_name == StableDiffusionProvider.provider_name:
        timeout = None
        if IMAGE_PROVIDER_TIMEOUT:
            try:
                timeout = float(IMAGE_PROVIDER_TIMEOUT)
            except ValueError:
                logger.error(f"Error: Invalid IMAGE_PROVIDER_TIMEOUT: {IMAGE_PROVIDER_TIMEOUT}")
                raise ValueError(f"IMAGE_PROVIDER_TIMEOUT must be a number of seconds, got: {IMAGE_PROVIDER_TIMEOUT}")
        return StableDiffusionProvider(IMAGE_PROVIDER_URL, api_key=IMAGE_PROVIDER_API_KEY, timeout=timeout)

    logger.error(f"Error: Unsupported image provider: {IMAGE_PROVIDER}")
    raise ValueError(f"Unsupported image provider: {IMAGE_PROVIDER}. "
                     f"Supported providers: {StableDiffusionProvider.provider_name}")
