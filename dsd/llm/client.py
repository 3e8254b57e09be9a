"""
OpenRouter LLM Client.

Provides a unified interface for calling vision and image models via
OpenRouter's API, which is compatible with the OpenAI API format.

The client never retries on its own: retry policy belongs to the pipeline
coordinator, so the SDK's built-in retries are disabled.
"""

import base64
import json
import logging
import os
from typing import Any, Optional, Union

from openai import AsyncOpenAI

from dsd.models.llm import ImageEditResponse, LLMResponse, ToolCallResponse
from dsd.utils.parsing import decode_data_url

logger = logging.getLogger(__name__)


def encode_file_for_message(content: bytes, mime_type: str) -> dict:
    """
    Encode file content as a base64 data URL for multimodal messages.

    Args:
        content: Raw file bytes
        mime_type: MIME type of the file (e.g., 'image/png')

    Returns:
        Dict with type and data URL for use in message content
    """
    b64_content = base64.b64encode(content).decode("utf-8")
    return {
        "type": "image_url",
        "image_url": {"url": f"data:{mime_type};base64,{b64_content}"},
    }


def build_multimodal_message(
    role: str,
    text: str,
    files: Optional[list[tuple[bytes, str]]] = None,
) -> dict:
    """
    Build a message dict with text and optional image attachments.

    Args:
        role: Message role ('user', 'assistant', 'system')
        text: Text content of the message
        files: Optional list of (content_bytes, mime_type) tuples

    Returns:
        Message dict compatible with OpenAI/OpenRouter API
    """
    if not files:
        return {"role": role, "content": text}

    content: list[dict] = [{"type": "text", "text": text}]
    for file_content, mime_type in files:
        content.append(encode_file_for_message(file_content, mime_type))

    return {"role": role, "content": content}


def attach_files(
    messages: list[dict],
    files: Optional[list[tuple[bytes, str]]],
) -> list[dict]:
    """Rebuild the last user message with the given attachments."""
    if not files:
        return messages

    processed_messages = []
    for i, msg in enumerate(messages):
        if i == len(messages) - 1 and msg.get("role") == "user":
            processed_messages.append(
                build_multimodal_message("user", msg.get("content", ""), files)
            )
        else:
            processed_messages.append(msg)
    return processed_messages


def _image_url_of(item: Union[dict, Any]) -> Optional[str]:
    """Read the data URL out of one entry of message.images."""
    if isinstance(item, dict):
        image_url = item.get("image_url") or {}
        return image_url.get("url") if isinstance(image_url, dict) else None
    image_url = getattr(item, "image_url", None)
    if isinstance(image_url, dict):
        return image_url.get("url")
    return getattr(image_url, "url", None)


class LLMClient:
    """
    Async client for OpenRouter API.

    Uses the OpenAI SDK with OpenRouter's base URL for compatibility.
    """

    OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        api_key: Optional[str] = None,
        site_url: Optional[str] = None,
        site_name: Optional[str] = None,
        timeout: float = 60.0,
    ):
        """
        Initialize the LLM client.

        Args:
            api_key: OpenRouter API key. If not provided, reads from OPENROUTER_API_KEY env var.
            site_url: Optional site URL for OpenRouter attribution.
            site_name: Optional site name for OpenRouter attribution.
            timeout: Default request timeout in seconds.
        """
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenRouter API key required. Set OPENROUTER_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.site_url = site_url or os.getenv("OPENROUTER_SITE_URL", "http://localhost:3000")
        self.site_name = site_name or os.getenv("OPENROUTER_SITE_NAME", "DSD Pipeline")

        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.OPENROUTER_BASE_URL,
            default_headers={
                "HTTP-Referer": self.site_url,
                "X-Title": self.site_name,
            },
            timeout=timeout,
            max_retries=0,
        )

        self._session_costs: list[dict] = []

    def _record_usage(self, model: str, response: Any) -> tuple[int, int]:
        input_tokens = response.usage.prompt_tokens if response.usage else 0
        output_tokens = response.usage.completion_tokens if response.usage else 0
        self._session_costs.append({
            "model": model,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
        })
        return input_tokens, output_tokens

    async def complete_multimodal(
        self,
        model: str,
        messages: list[dict],
        files: Optional[list[tuple[bytes, str]]] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Generate a text completion with image attachments.

        Args:
            model: Model identifier (must support vision)
            messages: List of message dicts (last user message will have files attached)
            files: List of (content_bytes, mime_type) tuples to attach
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate (optional)
            timeout: Per-call timeout in seconds (optional)

        Returns:
            LLMResponse with content and token usage
        """
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": attach_files(messages, files),
            "temperature": temperature,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        if timeout:
            kwargs["timeout"] = timeout

        response = await self.client.chat.completions.create(**kwargs)

        content = response.choices[0].message.content or ""
        finish_reason = response.choices[0].finish_reason or "stop"
        input_tokens, output_tokens = self._record_usage(model, response)

        return LLMResponse(
            content=content,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            finish_reason=finish_reason,
        )

    async def complete_with_tool(
        self,
        model: str,
        messages: list[dict],
        tool: dict,
        files: Optional[list[tuple[bytes, str]]] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ToolCallResponse:
        """
        Generate a completion forced to call a single function tool.

        Args:
            model: Model identifier
            messages: List of message dicts
            tool: OpenAI-format tool definition ({"type": "function", "function": {...}})
            files: Optional image attachments for the last user message
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate (optional)
            timeout: Per-call timeout in seconds (optional)

        Returns:
            ToolCallResponse carrying the raw JSON arguments when the model
            called the tool, and any text content it produced
        """
        tool_name = tool["function"]["name"]
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": attach_files(messages, files),
            "temperature": temperature,
            "tools": [tool],
            "tool_choice": {"type": "function", "function": {"name": tool_name}},
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        if timeout:
            kwargs["timeout"] = timeout

        response = await self.client.chat.completions.create(**kwargs)

        message = response.choices[0].message
        finish_reason = response.choices[0].finish_reason or "stop"
        input_tokens, output_tokens = self._record_usage(model, response)

        called_name = None
        arguments = None
        if message.tool_calls:
            call = message.tool_calls[0]
            called_name = call.function.name
            arguments = call.function.arguments
            if isinstance(arguments, dict):
                arguments = json.dumps(arguments)

        return ToolCallResponse(
            content=message.content or "",
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            finish_reason=finish_reason,
            tool_name=called_name,
            tool_arguments=arguments,
        )

    async def edit_image(
        self,
        model: str,
        prompt: str,
        image: bytes,
        mime_type: str = "image/jpeg",
        temperature: float = 0.4,
        seed: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ImageEditResponse:
        """
        Edit a photo with an image-output model.

        Args:
            model: Image-capable model identifier
            prompt: Editing instructions
            image: Source image bytes
            mime_type: MIME type of the source image
            temperature: Sampling temperature
            seed: Optional seed for reproducible edits
            timeout: Per-call timeout in seconds (optional)

        Returns:
            ImageEditResponse; image_data is None when the model returned no image
        """
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [build_multimodal_message("user", prompt, [(image, mime_type)])],
            "temperature": temperature,
            "extra_body": {"modalities": ["image", "text"]},
        }
        if seed is not None:
            kwargs["seed"] = seed
        if timeout:
            kwargs["timeout"] = timeout

        response = await self.client.chat.completions.create(**kwargs)
        self._record_usage(model, response)

        message = response.choices[0].message
        images = getattr(message, "images", None) or []
        for item in images:
            url = _image_url_of(item)
            decoded = decode_data_url(url) if url else None
            if decoded:
                data, image_mime = decoded
                return ImageEditResponse(
                    model=model,
                    image_data=data,
                    mime_type=image_mime,
                    text=message.content or "",
                )

        logger.warning(f"Model {model} returned no image")
        return ImageEditResponse(model=model, text=message.content or "")

    def get_session_usage(self) -> dict:
        """
        Get total token usage for this session.

        Returns:
            Dict with total input/output tokens by model
        """
        return _summarize_usage(self._session_costs)

    def reset_session(self):
        """Reset session cost tracking."""
        self._session_costs = []


def _summarize_usage(calls: list[dict]) -> dict:
    usage_by_model: dict[str, dict] = {}
    for call in calls:
        model = call["model"]
        if model not in usage_by_model:
            usage_by_model[model] = {
                "input_tokens": 0,
                "output_tokens": 0,
                "calls": 0,
            }
        usage_by_model[model]["input_tokens"] += call["input_tokens"]
        usage_by_model[model]["output_tokens"] += call["output_tokens"]
        usage_by_model[model]["calls"] += 1
    return usage_by_model


class MockLLMClient:
    """
    Mock LLM client for testing.

    Returns predefined responses without making actual API calls. A canned
    value that is an Exception instance is raised instead of returned.
    """

    def __init__(
        self,
        responses: Optional[dict[str, Union[str, Exception]]] = None,
        tool_responses: Optional[dict[str, Union[dict, str, Exception]]] = None,
        image_responses: Optional[dict[str, Union[bytes, Exception, None]]] = None,
    ):
        """
        Initialize mock client.

        Args:
            responses: Model name -> text content for complete_multimodal
            tool_responses: Model name -> tool arguments (dict or raw JSON string)
            image_responses: Model name -> image bytes for edit_image
        """
        self.responses = responses or {}
        self.tool_responses = tool_responses or {}
        self.image_responses = image_responses or {}
        self.calls: list[dict] = []
        self._session_costs: list[dict] = []

    def _track(self, model: str, text: str) -> tuple[int, int]:
        input_tokens = 100
        output_tokens = max(len(text) // 4, 1)
        self._session_costs.append({
            "model": model,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
        })
        return input_tokens, output_tokens

    async def complete_multimodal(
        self,
        model: str,
        messages: list[dict],
        files: Optional[list[tuple[bytes, str]]] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """Return a mock text response."""
        self.calls.append({
            "method": "complete_multimodal",
            "model": model,
            "messages": messages,
            "files": files,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        content = self.responses.get(model, f"Mock response from {model}")
        if isinstance(content, Exception):
            raise content

        input_tokens, output_tokens = self._track(model, content)
        return LLMResponse(
            content=content,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    async def complete_with_tool(
        self,
        model: str,
        messages: list[dict],
        tool: dict,
        files: Optional[list[tuple[bytes, str]]] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ToolCallResponse:
        """Return a mock tool call (or plain text when no arguments are canned)."""
        self.calls.append({
            "method": "complete_with_tool",
            "model": model,
            "messages": messages,
            "tool": tool,
            "files": files,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        canned = self.tool_responses.get(model)
        if isinstance(canned, Exception):
            raise canned

        arguments = json.dumps(canned) if isinstance(canned, dict) else canned
        content = "" if arguments is not None else self.responses.get(model, "")
        if isinstance(content, Exception):
            raise content

        input_tokens, output_tokens = self._track(model, arguments or content)
        return ToolCallResponse(
            content=content,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            tool_name=tool["function"]["name"] if arguments is not None else None,
            tool_arguments=arguments,
        )

    async def edit_image(
        self,
        model: str,
        prompt: str,
        image: bytes,
        mime_type: str = "image/jpeg",
        temperature: float = 0.4,
        seed: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ImageEditResponse:
        """Return a canned image."""
        self.calls.append({
            "method": "edit_image",
            "model": model,
            "prompt": prompt,
            "seed": seed,
            "timeout": timeout,
        })
        canned = self.image_responses.get(model, b"mock-image")
        if isinstance(canned, Exception):
            raise canned
        self._track(model, prompt)
        return ImageEditResponse(model=model, image_data=canned)

    def get_session_usage(self) -> dict:
        """Get mock session usage."""
        return _summarize_usage(self._session_costs)

    def reset_session(self):
        """Reset mock session."""
        self._session_costs = []
        self.calls = []
