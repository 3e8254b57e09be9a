"""
Lip Check.

Image models tend to lift the lips to show more of the new teeth, which
breaks the rule that nothing outside the teeth may change. A cheap vision
call compares the original photo with the simulation and answers SIM (the
lips moved) or NÃO. The check fails closed: an error or an unclear answer
counts as moved.
"""

import logging
import re
from typing import Optional

from dsd.models.assessment import PhotoInput
from dsd.utils.prompt_loader import render_prompt
from dsd.utils.protocols import LLMClientProtocol

logger = logging.getLogger(__name__)


def parse_lip_answer(content: Optional[str]) -> bool:
    """
    Read the model's SIM/NÃO answer.

    Returns:
        True when the lips moved or the answer is neither SIM nor NÃO
    """
    words = re.findall(r"\w+", (content or "").upper())
    if "SIM" in words:
        return True
    if "NÃO" in words or "NAO" in words:
        return False
    logger.warning(f"Lip check gave an unclear answer {content!r}; treating lips as moved")
    return True


class LipValidator:
    """Compare the lips of the original photo and a simulation."""

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 10,
        timeout: Optional[float] = 15.0,
    ):
        self.llm_client = llm_client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def lips_moved(
        self,
        photo: PhotoInput,
        simulation: bytes,
        mime_type: str = "image/png",
    ) -> bool:
        """
        Check one simulation against its source photo.

        Args:
            photo: The original smile photo (image 1)
            simulation: Rendered image bytes (image 2)
            mime_type: MIME type of the rendered image

        Returns:
            True if the lips moved or the check could not be completed
        """
        messages = [{"role": "user", "content": render_prompt("lip_check", "simulation")}]
        try:
            response = await self.llm_client.complete_multimodal(
                model=self.model,
                messages=messages,
                files=[photo.as_file(), (simulation, mime_type)],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(f"Lip check call to {self.model} failed: {e!r}; treating lips as moved")
            return True

        moved = parse_lip_answer(response.content)
        logger.info(f"Lip check ({self.model}): {'lips moved' if moved else 'lips unchanged'}")
        return moved
