"""LiteLLM-based LLM client."""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)
from pydantic import BaseModel, ValidationError

from repowiki.constants.llm import (
    DEFAULT_TEMPERATURE,
    JSON_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    MAX_TOKENS,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

JSON_INSTRUCTION = "Respond with valid JSON only."


class LLMError(Exception):
    """Base exception for LLM client errors."""

    pass


class LLMConnectionError(LLMError):
    """Raised when the LLM provider is unreachable, unavailable or times out."""

    pass


class LLMAuthenticationError(LLMError):
    """Raised when authentication with the LLM provider fails."""

    pass


class LLMRateLimitError(LLMError):
    """Raised when rate limited by the LLM provider."""

    pass


class LLMMalformedResponseError(LLMError):
    """Raised when a structured response does not match the expected schema."""

    def __init__(self, message: str, raw_response: str | None = None):
        super().__init__(message)
        self.raw_response = raw_response


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence from an LLM response."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


class LLMClient:
    """Unified LLM client supporting multiple providers via LiteLLM."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
        log_path: Path | None = None,
        timeout: float = LLM_TIMEOUT_SECONDS,
        max_tokens: int = MAX_TOKENS,
        default_temperature: float = DEFAULT_TEMPERATURE,
        json_temperature: float = JSON_TEMPERATURE,
    ):
        """Initialize LLM client.

        Args:
            provider: LLM provider (openai, anthropic, google, ollama).
            model: Model name.
            api_key: Optional API key (uses env var if not provided).
            endpoint: Optional custom endpoint (for Ollama).
            log_path: Optional path to JSONL log file for query logging.
            timeout: Per-request timeout in seconds.
            max_tokens: Default maximum response tokens.
            default_temperature: Temperature for free-text generation.
            json_temperature: Temperature for structured output.
        """
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint
        self.log_path = log_path
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.default_temperature = default_temperature
        self.json_temperature = json_temperature

    def _log_query(
        self,
        system_prompt: str | None,
        prompt: str,
        temperature: float,
        max_tokens: int,
        response: str | None,
        duration_ms: int,
        error: str | None,
        error_details: dict | None = None,
    ) -> None:
        """Append a query to the JSONL log file.

        Args:
            system_prompt: System prompt used.
            prompt: User prompt.
            temperature: Temperature setting.
            max_tokens: Max tokens setting.
            response: Response text (None if error).
            duration_ms: Request duration in milliseconds.
            error: Error message (None if success).
            error_details: Optional dict with status_code, headers, etc.
        """
        if not self.log_path:
            return

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": self.model,
            "request": {
                "system_prompt": system_prompt,
                "prompt": prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            "response": response,
            "duration_ms": duration_ms,
            "error": error,
        }

        if error_details:
            entry["error_details"] = error_details

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            logger.debug(f"Could not write LLM query log: {e}")

    def _extract_error_details(self, e: Exception) -> dict | None:
        """Extract HTTP details from LiteLLM exceptions.

        Args:
            e: The exception to extract details from.

        Returns:
            Dict with status_code, rate limit headers and provider if available.
        """
        details: dict = {}

        if hasattr(e, "status_code"):
            details["status_code"] = e.status_code

        resp = getattr(e, "response", None)
        if resp is not None:
            if hasattr(resp, "status_code"):
                details["status_code"] = resp.status_code
            headers = getattr(resp, "headers", None)
            if headers is not None:
                relevant_headers = {
                    k: v
                    for k, v in dict(headers).items()
                    if k.lower().startswith("x-ratelimit-")
                    or k.lower() in ("retry-after", "x-request-id")
                }
                if relevant_headers:
                    details["response_headers"] = relevant_headers

        if hasattr(e, "llm_provider"):
            details["llm_provider"] = e.llm_provider

        return details if details else None

    def _get_model_string(self) -> str:
        """Get LiteLLM model string.

        Returns:
            Model string in provider/model format.
        """
        if self.provider == "openai":
            return self.model  # OpenAI is default
        elif self.provider == "ollama":
            return f"ollama/{self.model}"
        else:
            return f"{self.provider}/{self.model}"

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate completion from prompt.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.
            temperature: Sampling temperature.
            max_tokens: Maximum response tokens.

        Returns:
            Generated text response.

        Raises:
            LLMAuthenticationError: If the provider rejects the credentials.
            LLMRateLimitError: If the provider throttles the request.
            LLMConnectionError: If the provider is unreachable, unavailable or times out.
            LLMError: For any other provider API error.
        """
        if temperature is None:
            temperature = self.default_temperature
        if max_tokens is None:
            max_tokens = self.max_tokens

        messages = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self._get_model_string(),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout": self.timeout,
        }

        if self.api_key:
            kwargs["api_key"] = self.api_key

        if self.endpoint and self.provider == "ollama":
            kwargs["api_base"] = self.endpoint

        start_time = time.perf_counter()
        try:
            response = await acompletion(**kwargs)
        except (
            AuthenticationError,
            RateLimitError,
            Timeout,
            ServiceUnavailableError,
            APIConnectionError,
            APIError,
        ) as e:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            self._log_query(
                system_prompt,
                prompt,
                temperature,
                max_tokens,
                response=None,
                duration_ms=duration_ms,
                error=str(e),
                error_details=self._extract_error_details(e),
            )
            raise _map_provider_error(e) from e

        result: str = str(response.choices[0].message.content or "")
        duration_ms = int((time.perf_counter() - start_time) * 1000)
        self._log_query(
            system_prompt,
            prompt,
            temperature,
            max_tokens,
            response=result,
            duration_ms=duration_ms,
            error=None,
        )
        return result

    async def generate_with_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate completion expecting JSON response.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.
            temperature: Sampling temperature (defaults to the JSON temperature).
            max_tokens: Maximum response tokens.

        Returns:
            Generated JSON string.
        """
        full_system = (system_prompt or "") + "\n\n" + JSON_INSTRUCTION
        return await self.generate(
            prompt,
            system_prompt=full_system.strip(),
            temperature=self.json_temperature if temperature is None else temperature,
            max_tokens=max_tokens,
        )

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None,
        response_model: type[ModelT],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ModelT:
        """Generate a structured response validated against a pydantic model.

        Args:
            prompt: User prompt.
            system_prompt: System prompt describing the task.
            response_model: Pydantic model the JSON response must satisfy.
            temperature: Sampling temperature.
            max_tokens: Maximum response tokens.

        Returns:
            Validated instance of response_model.

        Raises:
            LLMMalformedResponseError: If the response is not valid JSON for the model.
        """
        raw = await self.generate_with_json(
            prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return parse_structured_response(raw, response_model)


def parse_structured_response(raw: str, response_model: type[ModelT]) -> ModelT:
    """Validate a raw LLM response against a pydantic model.

    Raises:
        LLMMalformedResponseError: If the text is empty, not JSON, or fails validation.
    """
    text = strip_code_fences(raw)
    if not text:
        raise LLMMalformedResponseError("LLM returned an empty response", raw_response=raw)

    try:
        return response_model.model_validate_json(text)
    except ValidationError as e:
        raise LLMMalformedResponseError(
            f"LLM response did not match {response_model.__name__}: "
            f"{e.error_count()} validation error(s)",
            raw_response=raw,
        ) from e


def _map_provider_error(e: Exception) -> LLMError:
    """Translate a LiteLLM exception into the client's error hierarchy."""
    if isinstance(e, AuthenticationError):
        return LLMAuthenticationError(f"Authentication failed: {e}")
    if isinstance(e, RateLimitError):
        return LLMRateLimitError(f"Rate limit exceeded: {e}")
    if isinstance(e, Timeout):
        return LLMConnectionError(f"Request timed out: {e}")
    if isinstance(e, (ServiceUnavailableError, APIConnectionError)):
        return LLMConnectionError(f"Connection failed: {e}")
    return LLMError(f"LLM API error: {e}")
