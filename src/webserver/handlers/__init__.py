"""Request handlers. Only static files for now."""

from .static import ResourceResolver, StaticFileHandler, response_version

__all__ = ["ResourceResolver", "StaticFileHandler", "response_version"]
