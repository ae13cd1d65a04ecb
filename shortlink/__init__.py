"""Core business logic for the short link service."""

from .tokens import TokenGenerator
from .service import LinkService
from .models import LinkRecord, CreateResult, CreateStatus

__all__ = ["TokenGenerator", "LinkService", "LinkRecord", "CreateResult", "CreateStatus"]
