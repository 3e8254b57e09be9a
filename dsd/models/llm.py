"""
Response models returned by the inference transport.
"""

from typing import Optional

from pydantic import BaseModel, Field


class LLMResponse(BaseModel):
    """Response from an LLM API call."""

    content: str = Field(..., description="Generated text content")
    model: str = Field(..., description="Model that generated the response")
    input_tokens: int = Field(default=0, description="Number of input tokens")
    output_tokens: int = Field(default=0, description="Number of output tokens")
    finish_reason: str = Field(default="stop", description="Why generation stopped")


class ToolCallResponse(LLMResponse):
    """Response from a forced function-call request."""

    tool_name: Optional[str] = Field(default=None, description="Name of the called tool")
    tool_arguments: Optional[str] = Field(
        default=None,
        description="Raw JSON arguments of the tool call, if one was made",
    )


class ImageEditResponse(BaseModel):
    """Response from an image-edit request."""

    model: str
    image_data: Optional[bytes] = Field(default=None, description="Decoded image bytes")
    mime_type: str = Field(default="image/png")
    text: str = Field(default="", description="Any text the model returned alongside")
