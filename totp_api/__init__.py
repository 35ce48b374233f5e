"""Local HTTP API (Flask) over the TOTP service."""

from totp_api.app import create_app

__all__ = ["create_app"]
