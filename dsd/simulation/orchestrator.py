"""
Simulation Orchestrator.

Renders the "after" image for an assessment. Several variation attempts run
in parallel; each walks the model list in order until one model returns an
image that uploads. The first attempt to finish with a storage reference
wins and the others are cancelled. Failed attempts are logged and dropped,
and if every attempt fails the result is None: the simulation is best-effort
and never fails the pipeline.

With a lip validator configured, every rendered image is compared with the
original photo before upload and the verdict travels with the outcome.
"""

import asyncio
import logging
import time
from typing import Optional

from dsd.errors import StorageError
from dsd.models.assessment import ClinicalAssessment, PatientPreferences, PhotoInput
from dsd.models.results import SimulationOutcome
from dsd.simulation.lip_check import LipValidator
from dsd.simulation.prompts import SimulationPrompt, build_simulation_prompt, compute_image_seed
from dsd.utils.concurrency import first_successful
from dsd.utils.protocols import LLMClientProtocol, ObjectStorageProtocol

logger = logging.getLogger(__name__)

DEFAULT_MODE_TIMEOUTS = {
    "standard": 55.0,
    "intraoral": 35.0,
    "reconstruction": 55.0,
}


class SimulationOrchestrator:
    """Race parallel image-edit attempts across an ordered model fallback list."""

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        storage: ObjectStorageProtocol,
        models: list[str],
        variation_count: int = 3,
        bucket: str = "dsd-simulations",
        mode_timeouts: Optional[dict[str, float]] = None,
        min_call_timeout: float = 15.0,
        temperature: float = 0.4,
        lip_validator: Optional[LipValidator] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            llm_client: Client with an edit_image method
            storage: Object storage for the rendered image
            models: Image models to try, in order, inside every attempt
            variation_count: Number of parallel attempts
            bucket: Storage bucket for simulations
            mode_timeouts: Per-mode time budget of one attempt, in seconds
            min_call_timeout: Floor for the per-call timeout of a fallback model
            temperature: Sampling temperature for image edits
            lip_validator: Optional check that flags simulations whose lips moved
        """
        if not models:
            raise ValueError("At least one simulation model is required")
        self.llm_client = llm_client
        self.storage = storage
        self.models = list(models)
        self.variation_count = max(1, variation_count)
        self.bucket = bucket
        self.mode_timeouts = {**DEFAULT_MODE_TIMEOUTS, **(mode_timeouts or {})}
        self.min_call_timeout = min_call_timeout
        self.temperature = temperature
        self.lip_validator = lip_validator

    async def generate(
        self,
        photo: PhotoInput,
        assessment: ClinicalAssessment,
        actor_id: str,
        tooth_shape: str = "natural",
        preferences: Optional[PatientPreferences] = None,
    ) -> Optional[SimulationOutcome]:
        """
        Generate a simulation and upload it.

        Args:
            photo: The original smile photo
            assessment: Final assessment (read only)
            actor_id: Authenticated user; prefixes the storage path
            tooth_shape: User's tooth-shape preference
            preferences: Patient preferences (whitening level)

        Returns:
            The first successful attempt (storage reference, model, lip verdict), or None
        """
        prompt = build_simulation_prompt(assessment, tooth_shape, preferences)
        seed = compute_image_seed(photo.data)
        budget = self.mode_timeouts.get(prompt.mode.value, DEFAULT_MODE_TIMEOUTS["standard"])

        logger.info(
            f"Starting {self.variation_count} simulation attempt(s), mode={prompt.mode.value}, "
            f"budget={budget:.0f}s, models={self.models}"
        )
        attempts = [
            self._run_attempt(variation, prompt, photo, actor_id, seed, budget)
            for variation in range(1, self.variation_count + 1)
        ]
        outcome = await first_successful(attempts)
        if outcome is None:
            logger.warning("All simulation attempts failed; returning no simulation")
        return outcome

    async def _run_attempt(
        self,
        variation: int,
        prompt: SimulationPrompt,
        photo: PhotoInput,
        actor_id: str,
        seed: int,
        budget: float,
    ) -> Optional[SimulationOutcome]:
        """One variation: try each model in order until one image is stored."""
        loop = asyncio.get_running_loop()
        started = loop.time()

        for model in self.models:
            remaining = max(budget - (loop.time() - started), self.min_call_timeout)
            try:
                response = await asyncio.wait_for(
                    self.llm_client.edit_image(
                        model=model,
                        prompt=prompt.text,
                        image=photo.data,
                        mime_type=photo.mime_type,
                        temperature=self.temperature,
                        seed=seed + variation,
                        timeout=remaining,
                    ),
                    timeout=remaining,
                )
            except Exception as e:
                logger.warning(f"Variation {variation}: model {model} failed: {e!r}")
                continue

            if not response.image_data:
                logger.warning(f"Variation {variation}: model {model} returned no image")
                continue

            lips_moved = None
            if self.lip_validator is not None:
                lips_moved = await self.lip_validator.lips_moved(
                    photo, response.image_data, response.mime_type,
                )
                if lips_moved:
                    logger.warning(f"Variation {variation}: lips moved in the {model} simulation")

            path = f"{actor_id}/dsd_{int(time.time() * 1000)}_v{variation}.png"
            try:
                reference = await self.storage.upload(
                    self.bucket,
                    path,
                    response.image_data,
                    content_type=response.mime_type,
                )
            except StorageError as e:
                logger.warning(f"Variation {variation}: upload of {path} failed: {e}")
                continue

            logger.info(f"Variation {variation}: simulation stored at {reference} (model {model})")
            return SimulationOutcome(
                path=reference,
                model=model,
                variation=variation,
                lips_moved=lips_moved,
            )

        return None
