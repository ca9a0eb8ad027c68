"""
Ollama LLM provider using native ollama-python SDK.
"""

import ollama
from pydantic import BaseModel

from worldmodel.core.llm.base import Completion, LLMProvider
from worldmodel.utils.exceptions import LLMError
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaLLM(LLMProvider):
    """
    Ollama LLM provider for text generation.

    Structured output passes the model's JSON schema as the `format`
    constraint and validates the reply against it.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        timeout: float = 120.0,
    ):
        """
        Initialize Ollama LLM provider.

        Args:
            host: Ollama server URL
            model: Model name for text generation (e.g., "llama3.1", "mistral")
            timeout: Request timeout in seconds
        """
        self.host = host
        self.model = model
        self.timeout = timeout

        self.client = ollama.AsyncClient(host=host, timeout=timeout)

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
        Generate completion using Ollama.

        Raises:
            LLMError: If the request fails or output cannot be parsed
        """
        options = {
            "temperature": temperature,
            "num_predict": max_tokens,
            **kwargs.get("options", {}),
        }

        messages = []
        if system:
            messages.append({"role": "system", "content": system})

        format_type = None
        user_prompt = prompt
        if response_format:
            format_type = response_format.model_json_schema(by_alias=True)
            user_prompt = f"""{prompt}

Return ONLY valid JSON matching the requested schema, no markdown formatting or extra text.
Do not return the schema itself, return actual data."""
        messages.append({"role": "user", "content": user_prompt})

        try:
            response = await self.client.chat(
                model=self.model,
                messages=messages,
                format=format_type,
                options=options,
                **{k: v for k, v in kwargs.items() if k != "options"},
            )
        except Exception as e:
            logger.error(
                "Ollama API error",
                extra={"model": self.model, "host": self.host, "error": str(e)},
            )
            raise LLMError(f"Ollama API error: {e}") from e

        content = response["message"]["content"]
        input_tokens = response.get("prompt_eval_count") or 0
        output_tokens = response.get("eval_count") or 0

        result = self._parse_structured(content, response_format) if response_format else content
        return Completion(result=result, input_tokens=input_tokens, output_tokens=output_tokens)

    async def close(self):
        """Close client (Ollama SDK handles cleanup internally)."""
        pass
