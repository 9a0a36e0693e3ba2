"""
Error types shared by the generation and history layers
"""


class ImageGenError(Exception):
    """Base class for errors with a caller-facing message"""
    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(ImageGenError):
    """Bad or missing caller input. Raised before the provider or store is touched."""


class ProviderError(ImageGenError):
    """The image provider was unreachable or answered with a non-success status"""
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ProviderResponseError(ProviderError):
    """The provider answered successfully but without a usable image reference"""


class GenerationFailed(ImageGenError):
    """Orchestrated generation could not produce an image"""


class PersistenceError(ImageGenError):
    """The record store was unreachable or rejected a write"""
