"""
Pipeline Coordinator.

Sequences one DSD run:

    photo -> extraction  \
                          -> reconcile -> safety nets -> simulation -> persist
    photo -> classifier  /

Extraction and the smile-line classifier run concurrently. Extraction is the
only stage whose failure aborts the run; it is retried with backoff only for
retryable reasons, and every retry produces a full replacement assessment.
The classifier and the simulation degrade to None.
"""

import asyncio
import logging
from typing import Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from dsd.analysis.extractor import AssessmentExtractor
from dsd.analysis.reconciler import reconcile
from dsd.analysis.smile_line import SmileLineClassifier
from dsd.config import PipelineSettings
from dsd.errors import ExtractionError, RecordStoreError
from dsd.models.assessment import ClinicalAssessment, ExtractionContext
from dsd.models.results import DSDRequest, DSDResult
from dsd.rules.safety_nets import apply_safety_nets
from dsd.simulation.lip_check import LipValidator
from dsd.simulation.orchestrator import SimulationOrchestrator
from dsd.simulation.prompts import detect_simulation_note
from dsd.utils.protocols import EvaluationStoreProtocol, LLMClientProtocol, ObjectStorageProtocol

logger = logging.getLogger(__name__)


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, ExtractionError) and error.retryable


class DSDPipeline:
    """Run analysis, post-processing, simulation and persistence for one photo."""

    def __init__(
        self,
        extractor: AssessmentExtractor,
        classifier: SmileLineClassifier,
        orchestrator: SimulationOrchestrator,
        record_store: Optional[EvaluationStoreProtocol] = None,
        settings: Optional[PipelineSettings] = None,
    ):
        self.extractor = extractor
        self.classifier = classifier
        self.orchestrator = orchestrator
        self.record_store = record_store
        self.settings = settings or PipelineSettings()

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        llm_client: LLMClientProtocol,
        storage: ObjectStorageProtocol,
        record_store: Optional[EvaluationStoreProtocol] = None,
    ) -> "DSDPipeline":
        """Wire every stage from one settings object."""
        extractor = AssessmentExtractor(
            llm_client,
            model=settings.models.analysis,
            temperature=settings.analysis_temperature,
            max_tokens=settings.analysis_max_tokens,
            timeout=settings.timeouts.analysis,
            fallback_model=settings.models.analysis_fallback,
        )
        classifier = SmileLineClassifier(
            llm_client,
            model=settings.models.classifier,
            timeout=settings.timeouts.classifier,
        )
        lip_validator = None
        if settings.lip_validation:
            lip_validator = LipValidator(
                llm_client,
                model=settings.models.lip_check,
                timeout=settings.timeouts.lip_check,
            )
        orchestrator = SimulationOrchestrator(
            llm_client,
            storage,
            models=settings.models.simulation,
            variation_count=settings.variation_count,
            bucket=settings.simulation_bucket,
            mode_timeouts=settings.timeouts.simulation,
            min_call_timeout=settings.timeouts.min_simulation_call,
            temperature=settings.simulation_temperature,
            lip_validator=lip_validator,
        )
        return cls(extractor, classifier, orchestrator, record_store, settings)

    async def run(self, request: DSDRequest) -> DSDResult:
        """
        Execute the pipeline for one request.

        Args:
            request: Photo, actor and options

        Returns:
            Final assessment, optional simulation reference, note and lip verdict

        Raises:
            ExtractionError: If no assessment could be produced
        """
        if request.existing_assessment is not None:
            logger.info("Regenerating simulation from existing assessment")
            assessment = request.existing_assessment.model_copy(deep=True)
        else:
            assessment = await self.analyze(request)

        simulation_note = detect_simulation_note(assessment)

        outcome = None
        if not request.analysis_only:
            outcome = await self.orchestrator.generate(
                request.photo,
                assessment.model_copy(deep=True),
                actor_id=request.actor_id,
                tooth_shape=request.tooth_shape,
                preferences=request.patient_preferences,
            )
        simulation_path = outcome.path if outcome else None

        await self._persist(request, assessment, simulation_path)

        return DSDResult(
            analysis=assessment,
            simulation_path=simulation_path,
            simulation_note=simulation_note,
            lips_moved=outcome.lips_moved if outcome else None,
        )

    async def analyze(self, request: DSDRequest) -> ClinicalAssessment:
        """
        Produce the final assessment: extraction and classifier, reconcile, safety nets.

        Raises:
            ExtractionError: If extraction fails terminally or runs out of retries
        """
        context = ExtractionContext(
            tooth_shape=request.tooth_shape,
            additional_photos=request.additional_photos,
            patient_preferences=request.patient_preferences,
            clinical_observations=request.clinical_observations,
            clinical_teeth_findings=request.clinical_teeth_findings,
        )

        classifier_task = asyncio.create_task(self.classifier.classify(request.photo))
        try:
            assessment = await self._extract_with_retry(request, context)
        except Exception:
            classifier_task.cancel()
            raise

        classifier_result = await classifier_task
        reconcile(assessment, classifier_result)
        apply_safety_nets(
            assessment,
            request.additional_photos,
            allow_deciduous=self.settings.allow_deciduous,
        )
        return assessment

    async def _extract_with_retry(
        self,
        request: DSDRequest,
        context: ExtractionContext,
    ) -> ClinicalAssessment:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.extraction_max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self.settings.extraction_retry_min_wait,
                max=self.settings.extraction_retry_max_wait,
            ),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        assessment = None
        async for attempt in retrying:
            with attempt:
                # Each attempt yields a complete assessment; nothing is merged across attempts.
                assessment = await self.extractor.extract(request.photo, context)
        return assessment

    async def _persist(
        self,
        request: DSDRequest,
        assessment: ClinicalAssessment,
        simulation_path: Optional[str],
    ) -> None:
        """Write the result onto the evaluation, if it belongs to the actor."""
        if not request.evaluation_id or self.record_store is None:
            return

        fields = {"dsd_analysis": assessment.model_dump(mode="json")}
        if not request.analysis_only:
            fields["dsd_simulation_url"] = simulation_path

        try:
            owner = await self.record_store.get_evaluation_owner(request.evaluation_id)
            if owner != request.actor_id:
                logger.warning(
                    f"Evaluation {request.evaluation_id} does not belong to actor; not persisting"
                )
                return
            await self.record_store.update_evaluation(request.evaluation_id, fields)
        except RecordStoreError as e:
            logger.error(f"Failed to persist DSD result on evaluation {request.evaluation_id}: {e}")
            return

        logger.info(f"Persisted DSD result on evaluation {request.evaluation_id}")
