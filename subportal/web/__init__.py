"""Browser-facing web application."""

from subportal.web.app import create_app

__all__ = ["create_app"]
