"""Anthropic API client with rate limiting and error handling."""

import asyncio
import os
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

import httpx
import tiktoken
from anthropic import APIError, AsyncAnthropic
from anthropic.types import ContentBlock as AnthropicContentBlock
from anthropic.types import Message
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel

from aigenda.exceptions import ConfigurationError, LLMAPIError, LLMError, LLMResponseError
from aigenda.models.llm import ContentBlock, LLMResponse, LLMUsage, TextBlock, ToolUseBlock
from aigenda.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"

T = TypeVar("T")


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: str


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = DEFAULT_MODEL
    max_tokens: int = 1024
    temperature: float | None = None
    max_retries: int = 1  # total attempts; 1 means a failed call is not retried
    retry_delay: float = 1.0
    timeout: float = 60.0
    connect_timeout: float = 10.0

    max_prompt_tokens: int = 150_000
    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000

    @classmethod
    def from_env(cls) -> "AnthropicConfig":
        """Build a config, taking the model name from ANTHROPIC_MODEL when set."""
        return cls(model=os.getenv("ANTHROPIC_MODEL") or DEFAULT_MODEL)


class AnthropicRateLimiter:
    """Moving-window rate limiter for requests and tokens."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits within both the request and token limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_reset(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=estimated_tokens):
            await self._wait_for_reset(self.token_limit, token_identifier, "Token")

    async def _wait_for_reset(self, limit: Any, identifier: str, kind: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            wait_time = max(0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{kind} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


class AnthropicClient:
    """Anthropic Messages API client used as the agent's model collaborator."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: AsyncAnthropic
    config: AnthropicConfig
    rate_limiter: AnthropicRateLimiter

    def __init__(self, api_key: str | None = None, config: AnthropicConfig | None = None):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration

        Raises:
            ConfigurationError: If no API key is available
        """
        anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not anthropic_api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY environment variable not set")

        self.api_key = anthropic_api_key
        self.config = config or AnthropicConfig()

        self.client = AsyncAnthropic(
            api_key=self.api_key,
            timeout=httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout),
            max_retries=0,
        )
        self.rate_limiter = AnthropicRateLimiter(self.config.requests_per_minute, self.config.tokens_per_minute)

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def chat(self, prompt: str) -> str:
        """Send ``prompt`` as a single user message and return the reply text.

        Raises:
            LLMAPIError: If the request fails or returns a non-success status
            LLMResponseError: If the reply has no text content
        """
        self.validate_message_tokens(prompt)
        response = await self.create_message([AnthropicMessage(role="user", content=prompt)])

        text = response.text
        if text is None:
            raise LLMResponseError("Unexpected response format from Claude API")
        return text

    async def create_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str | None = None,
        **kwargs,
    ) -> LLMResponse:
        """Create a message with Claude API.

        Args:
            messages: Conversation messages
            system_prompt: Optional system prompt
            **kwargs: Overrides for model, max_tokens and temperature

        Returns:
            Provider-agnostic response
        """
        estimated_tokens = self._estimate_tokens(messages, system_prompt or "")
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": kwargs.get("model", self.config.model),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "messages": [msg.model_dump() for msg in messages],
        }
        temperature = kwargs.get("temperature", self.config.temperature)
        if temperature is not None:
            request_params["temperature"] = temperature
        if system_prompt:
            request_params["system"] = system_prompt

        logger.debug(f"Making Anthropic API call with model: {request_params['model']}")
        response: Message = await self._request_with_retries(lambda: self.client.messages.create(**request_params))

        usage = LLMUsage()
        if response.usage:
            usage = LLMUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            )

        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )

        return LLMResponse(
            content=self._convert_content_blocks(response.content),
            stop_reason=response.stop_reason,
            usage=usage,
            model=response.model,
        )

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Anthropic API request, retrying rate limits and server errors."""
        attempts = max(1, self.config.max_retries)
        for attempt in range(attempts):
            try:
                return await call()

            except APIError as e:
                status_code = getattr(e, "status_code", None)
                last_attempt = attempt >= attempts - 1

                if status_code == 429 and not last_attempt:
                    retry_after = 60
                    response = getattr(e, "response", None)
                    if response is not None:
                        retry_after = int(response.headers.get("retry-after", 60))
                    if retry_after < 120:
                        logger.warning(f"Rate limited by API, retrying in {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif (status_code is None or status_code >= 500) and not last_attempt:
                    delay = self.config.retry_delay * (2**attempt)
                    logger.warning(f"Anthropic API error ({e}), retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue

                logger.error(f"Anthropic API request failed: {e}")
                if status_code is not None:
                    raise LLMAPIError(f"API request failed with status {status_code}: {e}", status_code) from e
                raise LLMAPIError(f"HTTP request failed: {e}") from e

        raise LLMAPIError(f"Failed to complete request after {attempts} attempts")

    def _convert_content_blocks(self, anthropic_content: list[AnthropicContentBlock]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            block_dict = block.model_dump() if hasattr(block, "model_dump") else dict(block)
            block_type = block_dict.get("type")

            if block_type == "text":
                converted_blocks.append(TextBlock.model_validate(block_dict))
            elif block_type == "tool_use":
                converted_blocks.append(ToolUseBlock.model_validate(block_dict))
            else:
                logger.warning(f"Unknown content block type: {block_type}")

        return converted_blocks

    def _estimate_tokens(self, messages: list[AnthropicMessage], system_prompt: str) -> int:
        """Estimate token count for rate limiting."""
        text_content = system_prompt + "".join(message.content for message in messages)
        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Falls back to four characters per token without a tokenizer.
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            return len(message) // 4

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed the prompt token limit.

        Raises:
            LLMError: If the message exceeds the limit
        """
        token_count = self.estimate_message_tokens(message)
        if token_count > self.config.max_prompt_tokens:
            raise LLMError(
                f"Prompt exceeds token limit: {token_count} tokens > {self.config.max_prompt_tokens} limit"
            )


_anthropic_client: AnthropicClient | None = None


def get_anthropic_client() -> AnthropicClient:
    """Get or create Anthropic client instance.

    Raises:
        ConfigurationError: If ANTHROPIC_API_KEY is not set
    """
    global _anthropic_client
    if _anthropic_client is None:
        _anthropic_client = AnthropicClient(config=AnthropicConfig.from_env())
    return _anthropic_client
