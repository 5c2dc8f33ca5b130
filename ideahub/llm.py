import json
import logging
from typing import Optional

from google import genai
from google.genai import types

from ideahub.config import DEFAULT_CATEGORY, DEFAULT_MODEL, DEFAULT_SUGGESTION_TEMP, SUGGESTION_COUNT
from ideahub.models import SuggestionBatch, SuggestionResult
from ideahub.prompts import BRAINSTORM_PROMPT, ITEM_TYPE

logger = logging.getLogger(__name__)


class SuggestionGenerator:
    """
    Brainstorms video ideas with Gemini.

    Failures never raise: they come back as a SuggestionResult with
    `error` set.
    """

    def __init__(self,
                 api_key: Optional[str] = None,
                 model_name: str = DEFAULT_MODEL,
                 temperature: float = DEFAULT_SUGGESTION_TEMP):
        self.api_key = api_key
        self.model_name = model_name
        self.temperature = temperature
        self.total_token_count = 0
        if not self.api_key:
            logger.warning("GEMINI_API_KEY not found. Brainstorming will be disabled.")
            self.client = None
        else:
            try:
                self.client = genai.Client(api_key=self.api_key)
                logger.info(f"SuggestionGenerator initialized with model {model_name}")
            except Exception as e:
                logger.error(f"Failed to initialize Gemini client: {e}")
                self.client = None

    def is_enabled(self) -> bool:
        return self.client is not None

    def build_prompt(self, keywords: str, category: Optional[str]) -> str:
        return BRAINSTORM_PROMPT.format(
            count=SUGGESTION_COUNT,
            item_type=ITEM_TYPE,
            category=(category or "").strip() or DEFAULT_CATEGORY,
            keywords=keywords.strip(),
        )

    def _get_generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=self.temperature,
            response_mime_type="application/json",
            response_schema=SuggestionBatch,
        )

    def _parse(self, response) -> SuggestionBatch:
        parsed = getattr(response, "parsed", None)
        if isinstance(parsed, SuggestionBatch):
            return parsed
        return SuggestionBatch(**json.loads(response.text or ""))

    def generate_suggestions(self, keywords: str, category: Optional[str] = None) -> SuggestionResult:
        if not keywords or not keywords.strip():
            return SuggestionResult(error="Enter at least one keyword to brainstorm.")
        if self.client is None:
            return SuggestionResult(error="AI suggestions are unavailable: GEMINI_API_KEY is not configured.")

        prompt = self.build_prompt(keywords, category)
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=self._get_generation_config(),
            )
        except Exception as e:
            logger.warning(f"Gemini call failed: {e}")
            return SuggestionResult(error="The AI service could not be reached. Try again later.")

        usage = getattr(response, "usage_metadata", None)
        if usage is not None and getattr(usage, "total_token_count", None):
            self.total_token_count += usage.total_token_count
            logger.info(f"Total tokens {self.model_name}: {self.total_token_count}")

        try:
            batch = self._parse(response)
        except (json.JSONDecodeError, ValueError, TypeError) as e:
            logger.warning(f"Gemini returned unparseable suggestions: {e}")
            return SuggestionResult(error="The AI service returned an unexpected answer.")

        return SuggestionResult(suggestions=batch.suggestions)
