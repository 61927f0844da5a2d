"""Parameter store access and AI client construction."""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.config import settings
from catalog_sync.core.exceptions import ValidationError
from catalog_sync.llm.client import CompletionClient
from catalog_sync.models.parameter import Parameter

logger = structlog.get_logger(__name__)


class ParameterService:
    """Reads operator-managed parameters at call time."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        result = await self.db.execute(select(Parameter.value).where(Parameter.key == key))
        value = result.scalar_one_or_none()
        if value is None or not value.strip():
            return default
        return value.strip()

    async def build_completion_client(self) -> CompletionClient:
        """Create a completion client from the AI parameters.

        Raises:
            ValidationError: If the API key parameter is missing
        """
        api_key = await self.get_value(settings.AI_API_KEY_PARAM)
        if not api_key:
            raise ValidationError(f"AI API key parameter '{settings.AI_API_KEY_PARAM}' is not configured")

        base_url = await self.get_value(settings.AI_BASE_URL_PARAM, settings.AI_DEFAULT_BASE_URL)
        model = await self.get_value(settings.AI_MODEL_PARAM, settings.AI_DEFAULT_MODEL)

        logger.debug("completion_client_configured", base_url=base_url, model=model)
        return CompletionClient(api_key=api_key, base_url=base_url, model=model)
