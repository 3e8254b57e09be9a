"""
Shared Protocol definitions for type hints across the codebase.

These protocols define the interfaces expected from external collaborators
(inference transport, object storage, evaluation records), allowing for
dependency injection and testing.
"""

from typing import Any, Optional, Protocol

from dsd.models.llm import ImageEditResponse, LLMResponse, ToolCallResponse
from dsd.models.results import EvaluationProtocolRecord


class LLMClientProtocol(Protocol):
    """
    Protocol defining the interface for LLM clients.

    This protocol is used throughout the codebase to type-hint
    LLM client dependencies without coupling to a specific implementation.
    """

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
        Complete a multimodal conversation (with images).

        Args:
            model: Model identifier
            messages: List of message dicts
            files: Optional list of (content_bytes, mime_type) tuples
            temperature: Sampling temperature
            max_tokens: Optional maximum tokens
            timeout: Optional per-call timeout in seconds

        Returns:
            LLMResponse with content and token usage
        """
        ...

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
        Complete a conversation forcing a call to the given function tool.

        Returns:
            ToolCallResponse with the raw tool arguments, if any
        """
        ...

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
        Ask an image-capable model to edit a photo.

        Returns:
            ImageEditResponse with the decoded image, if one was returned
        """
        ...

    def get_session_usage(self) -> dict:
        """Get token usage statistics for the current session."""
        ...

    def reset_session(self) -> None:
        """Reset session tracking."""
        ...


class ObjectStorageProtocol(Protocol):
    """Object storage the simulation orchestrator uploads into."""

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "image/png",
    ) -> str:
        """
        Store bytes and return their storage reference.

        Raises:
            StorageError: If the upload is rejected
        """
        ...


class EvaluationStoreProtocol(Protocol):
    """
    Record store for evaluations.

    Implementations raise RecordStoreError on failure.
    """

    async def get_evaluation_owner(self, evaluation_id: str) -> Optional[str]:
        """Return the user id owning the evaluation, or None if it does not exist."""
        ...

    async def update_evaluation(self, evaluation_id: str, fields: dict[str, Any]) -> None:
        """Update columns on one evaluation."""
        ...

    async def find_latest_protocol(
        self,
        patient_id: str,
        tooth: str,
    ) -> Optional[EvaluationProtocolRecord]:
        """Most recent evaluation of this patient's tooth with a generic protocol."""
        ...

    async def fetch_session_evaluations(
        self,
        session_id: str,
        evaluation_ids: list[str],
    ) -> list[EvaluationProtocolRecord]:
        """Evaluations of one session restricted to the given ids."""
        ...

    async def update_evaluations(self, evaluation_ids: list[str], fields: dict[str, Any]) -> None:
        """Apply the same column update to several evaluations."""
        ...
