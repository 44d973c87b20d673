"""Async client for the storefront identity and cart API."""
from .app import StorefrontClient
from .config import ClientConfig

__all__ = ["StorefrontClient", "ClientConfig"]
