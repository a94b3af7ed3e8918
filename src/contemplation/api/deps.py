"""API dependencies for dependency injection."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from contemplation.core.config import get_settings, load_config
from contemplation.orchestration import ContemplationService


@lru_cache
def get_service() -> ContemplationService:
    """Get the process-wide contemplation service."""
    settings = get_settings()
    config = load_config(config_file=settings.config_file)
    return ContemplationService(config, settings)


# Type alias for cleaner route signatures
Service = Annotated[ContemplationService, Depends(get_service)]
