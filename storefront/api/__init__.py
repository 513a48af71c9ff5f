"""Remote storefront API client."""
from .client import StorefrontApi, extract_list

__all__ = ["StorefrontApi", "extract_list"]
