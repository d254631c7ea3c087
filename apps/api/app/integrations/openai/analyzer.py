"""OpenAI-backed image analyzer."""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from app.core.config import Settings
from app.core.exceptions import AnalysisError
from app.integrations.openai.prompts import (
    DISCLAIMER,
    FORMAT_SYSTEM_PROMPT,
    VISION_SYSTEM_PROMPT,
    build_format_prompt,
    build_vision_prompt,
)

logger = logging.getLogger(__name__)

FREE_MAX_TOKENS = 800
PREMIUM_MAX_TOKENS = 1500
FORMAT_MAX_TOKENS = 1000


class OpenAIImageAnalyzer:
    """Describes the image with a vision model, then asks for structured JSON."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None) -> None:
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout,
            max_retries=0,
        )
        self.vision_model = settings.openai_vision_model
        self.format_model = settings.openai_format_model

    async def analyze(
        self,
        image_url: str,
        questionnaire: dict[str, Any],
        region: str,
        premium: bool,
    ) -> dict[str, Any]:
        """Run the analysis and return the structured result payload.

        Raises:
            AnalysisError: If either model call fails or returns unusable output.
        """
        try:
            description = await self._describe(image_url, questionnaire, region, premium)
            structured = await self._structure(description, premium)
        except OpenAIError as e:
            logger.exception("OpenAI request failed")
            raise AnalysisError(f"Failed to analyze image: {e}") from e

        return format_result(structured, premium)

    async def _describe(
        self,
        image_url: str,
        questionnaire: dict[str, Any],
        region: str,
        premium: bool,
    ) -> str:
        response = await self.client.chat.completions.create(
            model=self.vision_model,
            messages=[
                {"role": "system", "content": VISION_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": build_vision_prompt(questionnaire, region, premium),
                        },
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": image_url,
                                "detail": "high" if premium else "low",
                            },
                        },
                    ],
                },
            ],
            max_tokens=PREMIUM_MAX_TOKENS if premium else FREE_MAX_TOKENS,
        )
        content = response.choices[0].message.content
        if not content:
            raise AnalysisError("Vision model returned an empty response")
        return content

    async def _structure(self, description: str, premium: bool) -> dict[str, Any]:
        response = await self.client.chat.completions.create(
            model=self.format_model,
            messages=[
                {"role": "system", "content": FORMAT_SYSTEM_PROMPT},
                {"role": "user", "content": build_format_prompt(description, premium)},
            ],
            response_format={"type": "json_object"},
            max_tokens=FORMAT_MAX_TOKENS,
        )
        content = response.choices[0].message.content or ""
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise AnalysisError("Formatter returned invalid JSON") from e
        if not isinstance(parsed, dict):
            raise AnalysisError("Formatter returned a non-object payload")
        return parsed


def format_result(result: dict[str, Any], premium: bool) -> dict[str, Any]:
    """Attach the disclaimer, tier and timestamp to a model result."""
    return {
        **result,
        "disclaimer": DISCLAIMER,
        "analysisType": "premium" if premium else "free",
        "timestamp": datetime.now(UTC).isoformat(),
    }
