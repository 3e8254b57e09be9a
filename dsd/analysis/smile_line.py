"""
Smile-Line Classifier.

A narrow second opinion on smile_line, the one categorical finding that gates
gingival treatment downstream. Any failure degrades to None.
"""

import logging
from typing import Any, Optional

from dsd.models.assessment import PhotoInput, SmileLineClassifierResult
from dsd.models.enums import Confidence, SmileLine
from dsd.utils.parsing import coerce_float, extract_json_object
from dsd.utils.prompt_loader import load_prompt
from dsd.utils.protocols import LLMClientProtocol

logger = logging.getLogger(__name__)


def _normalize_level(value: Any, enum_cls) -> Optional[str]:
    """Exact enum match after lowercasing; 'media' is accepted for 'média'."""
    if not isinstance(value, str):
        return None
    text = value.strip().lower()
    if text == "media":
        text = "média"
    for member in enum_cls:
        if member.value == text:
            return member.value
    return None


def parse_classifier_response(content: Optional[str]) -> Optional[SmileLineClassifierResult]:
    """
    Parse the classifier's JSON answer, tolerating fences and prose.

    Returns None when smile_line is outside the enum or the exposure is
    missing or not numeric. Unparseable confidence defaults to 'média'.
    """
    data = extract_json_object(content)
    if data is None:
        logger.warning("Smile-line classifier returned no JSON object")
        return None

    smile_line = _normalize_level(data.get("smile_line"), SmileLine)
    if smile_line is None:
        logger.warning(f"Smile-line classifier returned invalid smile_line {data.get('smile_line')!r}")
        return None

    exposure = coerce_float(data.get("gingival_exposure_mm"))
    if exposure is None:
        logger.warning("Smile-line classifier returned no gingival exposure")
        return None

    confidence = _normalize_level(data.get("confidence"), Confidence) or Confidence.MEDIA.value
    justification = data.get("justification")

    return SmileLineClassifierResult(
        smile_line=smile_line,
        gingival_exposure_mm=exposure,
        confidence=confidence,
        justification=justification if isinstance(justification, str) else "",
    )


class SmileLineClassifier:
    """Independent vision call dedicated to smile-line severity."""

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 300,
        timeout: Optional[float] = 20.0,
    ):
        self.llm_client = llm_client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def classify(self, photo: PhotoInput) -> Optional[SmileLineClassifierResult]:
        """
        Classify smile line from the main photo.

        Returns:
            The classifier verdict, or None on any failure
        """
        messages = [
            {"role": "system", "content": load_prompt("smile_line_classifier", "analysis")},
            {"role": "user", "content": "Classifique a linha do sorriso desta foto."},
        ]
        try:
            response = await self.llm_client.complete_multimodal(
                model=self.model,
                messages=messages,
                files=[photo.as_file()],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(f"Smile-line classifier call to {self.model} failed: {e!r}")
            return None

        result = parse_classifier_response(response.content)
        if result is not None:
            logger.info(
                f"Smile-line classifier: {result.smile_line} "
                f"({result.gingival_exposure_mm:.1f}mm, confidence={result.confidence})"
            )
        return result
