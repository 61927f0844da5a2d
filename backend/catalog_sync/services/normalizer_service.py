"""AI-assisted content normalization.

Two operations, both re-runnable (the stored output is overwritten):

- outline extraction: course HTML -> structured sections/lectures JSON,
  followed by a translation pass over the titles
- description conversion: description HTML -> clean markdown prose
"""

import json
from typing import Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.config import settings
from catalog_sync.core.exceptions import AIResponseParseError, ValidationError
from catalog_sync.llm.client import CompletionClient
from catalog_sync.schemas.outline import Outline
from catalog_sync.scrapers.utils.markdown import fix_markdown_content
from catalog_sync.services.parameter_service import ParameterService
from catalog_sync.services.resource_service import ResourceService

logger = structlog.get_logger(__name__)


OUTLINE_SYSTEM_PROMPT = (
    "You are an assistant that parses HTML structure. You extract structured "
    "information from HTML and reply with JSON data only."
)

OUTLINE_EXTRACT_PROMPT = """Extract the course outline from the HTML below.
The HTML describes the sections of an online course and the lectures in each section.
Extract every section and every lecture with its title and duration.

Reply in exactly this JSON format:
{{
  "sections": [
    {{
      "title": "section title",
      "duration": "total section duration",
      "lectures": [
        {{"title": "lecture title", "duration": "lecture duration"}}
      ]
    }}
  ]
}}

HTML:
{html}

Reply with the JSON only, without any other text."""

OUTLINE_TRANSLATE_PROMPT = """Translate every "title" value in the JSON below into {language}.
Do not change keys, durations or the structure, and do not add or remove items.

{outline}

Reply with the JSON only, without any other text."""

DESCRIPTION_SYSTEM_PROMPT = (
    "You turn course description HTML into clean, well-structured markdown."
)

DESCRIPTION_PROMPT = """Convert the following course description HTML into clean markdown.
Keep headings, lists, emphasis and links. Drop scripts, styles, navigation,
advertising and empty elements. Do not add content that is not in the HTML.

HTML:
{html}

Reply with the markdown only."""


class NormalizerService:
    """Service for AI outline extraction and description conversion."""

    def __init__(self, db: AsyncSession, client: Optional[CompletionClient] = None):
        """Initialize normalizer service.

        Args:
            db: Async database session
            client: Completion client; built from the parameter store on
                first use when omitted
        """
        self.db = db
        self._client = client
        self.resources = ResourceService(db)
        self.logger = logger.bind(service="normalizer_service")

    async def get_client(self) -> CompletionClient:
        if self._client is None:
            self._client = await ParameterService(self.db).build_completion_client()
        return self._client

    async def extract_outline(self, resource_id: int, target_language: Optional[str] = None) -> Outline:
        """Extract and translate the course outline of a resource.

        Args:
            resource_id: ExternalResource id
            target_language: Language of the translated titles, defaults to
                AI_OUTLINE_LANGUAGE

        Returns:
            The translated Outline, also stored in ``outline_json``

        Raises:
            NotFoundError: If the resource does not exist
            ValidationError: If there is no course HTML or the AI is not configured
            AIResponseParseError: If a reply is not a valid outline
            UpstreamFetchError: If the completion request fails
        """
        resource = await self.resources.get_or_raise(resource_id)
        if not resource.course_html:
            raise ValidationError(f"Resource {resource_id} has no course HTML to parse")

        language = target_language or settings.AI_OUTLINE_LANGUAGE
        client = await self.get_client()

        self.logger.info("outline_extraction_started", resource_id=resource_id, html_length=len(resource.course_html))

        # Stage A: structure
        extracted = await client.complete_json([
            {"role": "system", "content": OUTLINE_SYSTEM_PROMPT},
            {"role": "user", "content": OUTLINE_EXTRACT_PROMPT.format(html=resource.course_html)},
        ])
        outline = self._validate_outline(extracted)

        # Stage B: titles only
        translated = await client.complete_json([
            {"role": "system", "content": OUTLINE_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": OUTLINE_TRANSLATE_PROMPT.format(
                    language=language,
                    outline=json.dumps(outline.model_dump(), ensure_ascii=False, indent=2),
                ),
            },
        ])
        outline = self._validate_outline(translated)

        await self.resources.update_partial(
            resource,
            {"outline_json": json.dumps(outline.model_dump(), ensure_ascii=False, indent=2)},
        )

        self.logger.info(
            "outline_extracted",
            resource_id=resource_id,
            sections=len(outline.sections),
            lectures=outline.lecture_count,
        )
        return outline

    async def html_to_text(self, html: str) -> str:
        """Convert description HTML to markdown with one completion.

        Does not touch the database. Returns an empty string for empty input.
        """
        if not html or not html.strip():
            return ""

        client = await self.get_client()
        reply = await client.complete([
            {"role": "system", "content": DESCRIPTION_SYSTEM_PROMPT},
            {"role": "user", "content": DESCRIPTION_PROMPT.format(html=html)},
        ])
        return fix_markdown_content(reply).strip()

    async def convert_html_to_text(self, resource_id: int) -> str:
        """Convert a resource's description HTML and store the result.

        Raises:
            NotFoundError: If the resource does not exist
            ValidationError: If there is no description HTML, or the
                conversion came back empty (nothing is stored then)
        """
        resource = await self.resources.get_or_raise(resource_id)
        if not resource.details_html:
            raise ValidationError(f"Resource {resource_id} has no description HTML")

        text = await self.html_to_text(resource.details_html)
        if not text:
            raise ValidationError(f"Description conversion for resource {resource_id} returned no text")

        await self.resources.update_partial(resource, {"normalized_text": text})
        self.logger.info("description_converted", resource_id=resource_id, length=len(text))
        return text

    @staticmethod
    def _validate_outline(data) -> Outline:
        if not isinstance(data, dict):
            raise AIResponseParseError("AI outline reply is not a JSON object", raw=json.dumps(data, ensure_ascii=False))
        try:
            return Outline.model_validate(data)
        except PydanticValidationError as e:
            raise AIResponseParseError(
                f"AI outline reply does not match the outline structure: {e.error_count()} errors",
                raw=json.dumps(data, ensure_ascii=False),
            ) from e
