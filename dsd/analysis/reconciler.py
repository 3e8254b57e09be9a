"""
Assessment Reconciler.

Merges the smile-line classifier's verdict into the main assessment in two
tiers: a categorical override that requires non-low confidence, then a
quantitative override (exposure >= 3mm means gummy smile) that does not.
"""

import logging
from typing import Optional

from dsd.models.assessment import ClinicalAssessment, SmileLineClassifierResult
from dsd.models.enums import SMILE_LINE_ORDINAL, Confidence, SmileLine

logger = logging.getLogger(__name__)

GUMMY_SMILE_THRESHOLD_MM = 3.0


def reconcile(
    assessment: ClinicalAssessment,
    classifier_result: Optional[SmileLineClassifierResult],
) -> None:
    """
    Apply the classifier's second opinion to assessment.smile_line in place.

    Args:
        assessment: Main assessment (mutated)
        classifier_result: Classifier verdict, or None when it degraded
    """
    if classifier_result is None:
        logger.debug("No classifier result; smile_line kept as extracted")
        return

    primary = assessment.smile_line
    secondary = classifier_result.smile_line
    exposure = classifier_result.gingival_exposure_mm

    primary_rank = SMILE_LINE_ORDINAL.get(primary)
    secondary_rank = SMILE_LINE_ORDINAL.get(secondary)
    if primary_rank is not None and secondary_rank is not None and primary_rank != secondary_rank:
        if classifier_result.confidence == Confidence.BAIXA:
            logger.info(
                f"Classifier disagrees ({primary} vs {secondary}) with low confidence; not overriding"
            )
        else:
            logger.info(f"Classifier override: smile_line {primary} -> {secondary}")
            assessment.smile_line = secondary
            assessment.observations.append(
                f"Linha do sorriso ajustada de '{primary}' para '{secondary}' por classificador "
                f"dedicado (exposição gengival estimada: {exposure:.1f}mm)."
            )

    if exposure >= GUMMY_SMILE_THRESHOLD_MM and assessment.smile_line != SmileLine.ALTA:
        previous = assessment.smile_line
        logger.info(f"Exposure {exposure:.1f}mm >= {GUMMY_SMILE_THRESHOLD_MM}mm: {previous} -> alta")
        assessment.smile_line = SmileLine.ALTA.value
        assessment.observations.append(
            f"Exposição gengival estimada de {exposure:.1f}mm (>= 3mm): linha do sorriso "
            f"reclassificada de '{previous}' para 'alta' (sorriso gengival)."
        )
