"""
Abstract base class for LLM providers.
Handles text generation with optional structured outputs.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from worldmodel.utils.exceptions import LLMError


class Completion(BaseModel):
    """LLM result plus the token counts needed for usage accounting."""

    model_config = {"arbitrary_types_allowed": True}

    result: Any
    input_tokens: int = 0
    output_tokens: int = 0


class LLMProvider(ABC):
    """
    Abstract base for LLM text generation providers.

    Responsibilities:
    - Text completion/generation
    - Structured output validated against a Pydantic model
    - Token usage reporting
    """

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        response_format: type[BaseModel] | None = None,
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.0,
        **kwargs,
    ) -> Completion:
        """
        Generate completion from prompt.

        Args:
            prompt: The user prompt
            response_format: Optional Pydantic model for structured output
            system: Optional system prompt
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0.0 = deterministic)
            **kwargs: Provider-specific parameters

        Returns:
            Completion whose result is a response_format instance if given, else a string

        Raises:
            LLMError: Provider failure or unparseable structured output
        """
        pass

    @abstractmethod
    async def close(self):
        """
        Close any open connections.
        Optional to override if provider needs cleanup.
        """

    @staticmethod
    def _extract_json(content: str) -> str:
        """
        Extract JSON from content that might have markdown formatting.
        """
        content = content.strip()

        if "```json" in content:
            content = content.split("```json")[1].split("```")[0].strip()
        elif "```" in content:
            content = content.split("```")[1].split("```")[0].strip()

        return content

    @classmethod
    def _parse_structured(cls, content: str, response_format: type[BaseModel]) -> BaseModel:
        """Validate raw model output against the expected schema."""
        cleaned = cls._extract_json(content)
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise LLMError(
                f"LLM returned invalid JSON: {e}",
                context={"raw": content[:500], "expected": response_format.__name__},
            ) from e

        if isinstance(parsed, dict) and "properties" in parsed and "type" in parsed:
            raise LLMError(
                "LLM returned the JSON schema instead of actual data",
                context={"expected": response_format.__name__},
            )

        try:
            return response_format.model_validate(parsed)
        except PydanticValidationError as e:
            raise LLMError(
                f"Failed to parse structured output: {e}",
                context={"raw": content[:500], "expected": response_format.__name__},
            ) from e
