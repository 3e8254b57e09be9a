"""
Structured Extraction Client.

Sends the clinical photo to a vision model with the analyze_dsd function
forced, and turns the function arguments into a ClinicalAssessment.

Failures surface as ExtractionError with a reason the caller can act on:
rate_limited and upstream_unavailable may be retried with backoff,
payment_required and malformed_response must not be retried silently.

When a fallback model is configured (normally from another provider), it is
tried once after any primary failure except a rate limit.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import openai
from pydantic import ValidationError

from dsd.analysis.context import build_analysis_prompt
from dsd.analysis.schema import ANALYZE_DSD_TOOL, TOOL_NAME, parse_assessment
from dsd.errors import ExtractionError
from dsd.models.assessment import ClinicalAssessment, ExtractionContext, PhotoInput
from dsd.models.enums import ExtractionFailureReason
from dsd.models.llm import ToolCallResponse
from dsd.utils.parsing import extract_json_object
from dsd.utils.protocols import LLMClientProtocol

logger = logging.getLogger(__name__)


def classify_upstream_error(error: Exception) -> ExtractionFailureReason:
    """
    Map a transport exception onto an extraction failure reason.

    Args:
        error: Exception raised by the inference client

    Returns:
        rate_limited for 429, payment_required for 402, upstream_unavailable otherwise
    """
    if isinstance(error, openai.RateLimitError):
        return ExtractionFailureReason.RATE_LIMITED
    if isinstance(error, openai.APIStatusError):
        if error.status_code == 429:
            return ExtractionFailureReason.RATE_LIMITED
        if error.status_code == 402:
            return ExtractionFailureReason.PAYMENT_REQUIRED
    return ExtractionFailureReason.UPSTREAM_UNAVAILABLE


def extract_tool_payload(response: ToolCallResponse) -> Optional[dict[str, Any]]:
    """
    Pull the analysis payload out of a tool-call response.

    Prefers the function arguments; when the model answered in plain text
    instead, the JSON object embedded in that text is used.
    """
    if response.tool_arguments:
        try:
            payload = json.loads(response.tool_arguments)
        except json.JSONDecodeError:
            logger.warning(f"Tool arguments from {response.model} are not valid JSON")
            payload = None
        if isinstance(payload, dict):
            return payload

    if response.content:
        payload = extract_json_object(response.content)
        if payload is not None:
            logger.info(f"Model {response.model} answered without a tool call; using text JSON")
            return payload

    return None


class AssessmentExtractor:
    """Produce a ClinicalAssessment from a photo with a forced function call."""

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 4000,
        timeout: Optional[float] = 50.0,
        fallback_model: Optional[str] = None,
    ):
        """
        Initialize the extractor.

        Args:
            llm_client: Client with a complete_with_tool method
            model: Primary analysis model
            temperature: Sampling temperature
            max_tokens: Output token cap
            timeout: Per-call timeout in seconds
            fallback_model: Model tried once when the primary fails for any
                reason other than a rate limit
        """
        self.llm_client = llm_client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.fallback_model = fallback_model if fallback_model != model else None

    async def extract(
        self,
        photo: PhotoInput,
        context: Optional[ExtractionContext] = None,
    ) -> ClinicalAssessment:
        """
        Analyze one photo.

        Args:
            photo: Main smile photo
            context: Tooth shape, extra photos, preferences and prior findings

        Returns:
            A fresh ClinicalAssessment (not yet reconciled or post-processed)

        Raises:
            ExtractionError: On upstream failure or unusable output
        """
        context = context or ExtractionContext()
        files = [photo.as_file()]
        extra = context.additional_photos
        if extra and extra.smile45:
            files.append(extra.smile45.as_file())
        if extra and extra.face:
            files.append(extra.face.as_file())

        messages = [
            {"role": "system", "content": build_analysis_prompt(context)},
            {"role": "user", "content": "Analise esta foto e retorne a análise DSD completa."},
        ]

        try:
            return await self._extract_with(self.model, messages, files)
        except ExtractionError as e:
            if not self.fallback_model or e.reason == ExtractionFailureReason.RATE_LIMITED:
                raise
            logger.warning(
                f"Primary analysis model {self.model} failed ({e.reason.value}); "
                f"trying fallback {self.fallback_model}"
            )
            return await self._extract_with(self.fallback_model, messages, files)

    async def _extract_with(
        self,
        model: str,
        messages: list[dict],
        files: list[tuple[bytes, str]],
    ) -> ClinicalAssessment:
        """One forced tool call against one model."""
        try:
            response = await self.llm_client.complete_with_tool(
                model=model,
                messages=messages,
                tool=ANALYZE_DSD_TOOL,
                files=files,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )
        except (openai.OpenAIError, asyncio.TimeoutError) as e:
            reason = classify_upstream_error(e)
            status_code = getattr(e, "status_code", None)
            logger.warning(f"Extraction call to {model} failed ({reason.value}): {e}")
            raise ExtractionError(
                reason,
                message=f"Analysis model call failed: {e}",
                model=model,
                status_code=status_code,
            ) from e
        except Exception as e:
            # Error bodies returned with HTTP 200 break response parsing in the client.
            logger.warning(f"Extraction call to {model} returned an unusable response: {e!r}")
            raise ExtractionError(
                ExtractionFailureReason.UPSTREAM_UNAVAILABLE,
                message=f"Analysis model call failed: {e!r}",
                model=model,
            ) from e

        if response.tool_name and response.tool_name != TOOL_NAME:
            logger.warning(f"Model {model} called unexpected tool {response.tool_name}")

        payload = extract_tool_payload(response)
        if payload is None:
            logger.error(f"Model {model} returned no usable analysis payload")
            raise ExtractionError(
                ExtractionFailureReason.MALFORMED_RESPONSE,
                message="Analysis response contained no tool call or JSON object",
                model=model,
            )

        try:
            assessment = parse_assessment(payload)
        except ValidationError as e:
            logger.error(f"Analysis payload from {model} failed validation: {e}")
            raise ExtractionError(
                ExtractionFailureReason.MALFORMED_RESPONSE,
                message=f"Analysis payload failed validation: {e.error_count()} error(s)",
                model=model,
            ) from e

        logger.info(
            f"Extracted assessment with {model}: smile_line={assessment.smile_line}, "
            f"{len(assessment.suggestions)} suggestion(s), confidence={assessment.confidence}"
        )
        return assessment
