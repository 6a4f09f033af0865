"""Service clients for the image host and identity provider."""

from .identity import AuthError, IdentityClient
from .image_host import ImageHostClient, UploadError

__all__ = [
    "AuthError",
    "IdentityClient",
    "ImageHostClient",
    "UploadError",
]
