"""
Post-processing safety nets for model-produced assessments.

The structured output of the vision model is untrusted input. These rules
repair and validate it against clinical invariants the model cannot be relied
on to enforce. Each rule is a small synchronous function that mutates the
assessment in place, records what it changed in ``observations`` and logs
it. ``apply_safety_nets`` runs them in a fixed order:

    1. visagism reset (no face photo)
    2. gingival-contouring gate (smile line)
    3. overbite warning
    4. treatment-indication consistency repair
    5. FDI validity filter
    6. arch-predominance filter

Later rules assume earlier ones already ran. Applying the whole pipeline a
second time to its own output changes nothing.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from dsd.models.assessment import AdditionalPhotos, ClinicalAssessment, ToothFinding
from dsd.models.enums import (
    FaceShape,
    OverbiteSuspicion,
    SmileLine,
    Temperament,
    ToothShape,
    TreatmentIndication,
)
from dsd.rules.fdi import is_lower_arch, is_upper_arch, is_valid_fdi_code

logger = logging.getLogger(__name__)


# =============================================================================
# Visagism
# =============================================================================

VISAGISM_SKIPPED_NOTE = (
    "Análise de visagismo requer foto da face completa para determinação "
    "precisa de formato facial e temperamento."
)
VISAGISM_SKIPPED_OBSERVATION = (
    "Análise de visagismo não realizada: foto da face completa não fornecida."
)
VISAGISM_OBSERVATION_PREFIXES = (
    "formato facial",
    "temperamento percebido",
    "análise de visagismo",
    "visagismo:",
)


def _is_visagism_observation(observation: str) -> bool:
    return observation.strip().lower().startswith(VISAGISM_OBSERVATION_PREFIXES)


def _is_neutral_visagism(assessment: ClinicalAssessment) -> bool:
    return (
        assessment.face_shape == FaceShape.OVAL
        and assessment.perceived_temperament == Temperament.FLEUMATICO
        and assessment.recommended_tooth_shape == ToothShape.NATURAL
        and assessment.visagism_notes == VISAGISM_SKIPPED_NOTE
    )


def reset_visagism_without_face_photo(
    assessment: ClinicalAssessment,
    has_face_photo: bool,
) -> None:
    """
    Neutralize visagism output that was inferred without a full-face photo.

    Face shape and temperament cannot be judged from a smile close-up, so
    whatever the model said is replaced with neutral defaults and its
    visagism observations are dropped.
    """
    if has_face_photo or not assessment.has_visagism:
        return
    if _is_neutral_visagism(assessment) and VISAGISM_SKIPPED_OBSERVATION in assessment.observations:
        return

    logger.info(
        f"Resetting visagism without face photo "
        f"(face_shape={assessment.face_shape}, temperament={assessment.perceived_temperament})"
    )
    assessment.face_shape = FaceShape.OVAL.value
    assessment.perceived_temperament = Temperament.FLEUMATICO.value
    assessment.recommended_tooth_shape = ToothShape.NATURAL.value
    assessment.visagism_notes = VISAGISM_SKIPPED_NOTE

    kept = [obs for obs in assessment.observations if not _is_visagism_observation(obs)]
    if VISAGISM_SKIPPED_OBSERVATION not in kept:
        kept.append(VISAGISM_SKIPPED_OBSERVATION)
    assessment.observations = kept


# =============================================================================
# Gingival contouring
# =============================================================================

GINGIVAL_CONTOUR_KEYWORDS = ("gengivoplastia", "recontorno gengival")
GINGIVAL_EVIDENCE_KEYWORDS = ("assimetria gengival", "coroa clínica curta")

OVERBITE_WARNING = (
    "ATENÇÃO: Suspeita de sobremordida profunda. Confirmar com avaliação "
    "ortodôntica antes de gengivoplastia."
)


def mentions_gingival_contouring(finding: ToothFinding) -> bool:
    """True when the proposal describes gum-tissue reshaping."""
    proposed = (finding.proposed_change or "").lower()
    return any(keyword in proposed for keyword in GINGIVAL_CONTOUR_KEYWORDS)


def has_gingival_evidence(observations: list[str]) -> bool:
    """Observations explicitly describe asymmetric or visible gum."""
    for observation in observations:
        text = observation.lower()
        if any(keyword in text for keyword in GINGIVAL_EVIDENCE_KEYWORDS):
            return True
        if "gengiva" in text and "visível" in text:
            return True
    return False


def gate_gingival_contouring(assessment: ClinicalAssessment) -> None:
    """
    Drop gingival-contouring suggestions the smile line does not support.

    - alta: always kept
    - média: kept only with gingival-visibility evidence in observations
    - baixa: always dropped
    """
    smile_line = assessment.smile_line
    if smile_line == SmileLine.ALTA:
        return
    if smile_line == SmileLine.MEDIA and has_gingival_evidence(assessment.observations):
        return
    if smile_line not in (SmileLine.MEDIA, SmileLine.BAIXA):
        return

    kept = [s for s in assessment.suggestions if not mentions_gingival_contouring(s)]
    removed = len(assessment.suggestions) - len(kept)
    if removed:
        logger.info(
            f"Removed {removed} gingival-contouring suggestion(s) for smile_line={smile_line}"
        )
        assessment.suggestions = kept


def annotate_overbite_risk(assessment: ClinicalAssessment) -> None:
    """Warn (without removing anything) when gengivoplastia meets suspected deep overbite."""
    if assessment.overbite_suspicion != OverbiteSuspicion.SIM:
        return
    if not any(mentions_gingival_contouring(s) for s in assessment.suggestions):
        return
    if any("sobremordida" in obs.lower() for obs in assessment.observations):
        return

    logger.info("Overbite suspected alongside gingival contouring; adding warning")
    assessment.observations.append(OVERBITE_WARNING)


# =============================================================================
# Treatment-indication consistency
# =============================================================================


@dataclass(frozen=True)
class IndicationRepair:
    """One targeted rewrite: when ``source`` and ``matches`` hold, set ``target``."""

    name: str
    source: TreatmentIndication
    target: TreatmentIndication
    matches: Callable[[str, str], bool]


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


# (issue, proposed) are lowercased before matching.
REFERRAL_REPAIRS: tuple[IndicationRepair, ...] = (
    IndicationRepair(
        name="referral_describes_gingivoplasty",
        source=TreatmentIndication.ENCAMINHAMENTO,
        target=TreatmentIndication.GENGIVOPLASTIA,
        matches=lambda issue, proposed: "gengivoplastia" in proposed or "gengivoplastia" in issue,
    ),
    IndicationRepair(
        name="referral_describes_root_coverage",
        source=TreatmentIndication.ENCAMINHAMENTO,
        target=TreatmentIndication.RECOBRIMENTO_RADICULAR,
        matches=lambda issue, proposed: "recobrimento" in proposed or "recobrimento radicular" in issue,
    ),
)

GINGIVOPLASTY_REPAIRS: tuple[IndicationRepair, ...] = (
    IndicationRepair(
        name="incisal_lengthening",
        source=TreatmentIndication.GENGIVOPLASTIA,
        target=TreatmentIndication.RESINA,
        matches=lambda issue, proposed: "aument" in proposed and _contains_any(proposed, ("incisal", "bordo")),
    ),
    IndicationRepair(
        name="root_exposure",
        source=TreatmentIndication.GENGIVOPLASTIA,
        target=TreatmentIndication.RECOBRIMENTO_RADICULAR,
        matches=lambda issue, proposed: (
            _contains_any(issue, ("recessão", "raiz exposta", "recobrimento"))
            or "cobrir raiz" in proposed
        ),
    ),
    IndicationRepair(
        name="root_coverage_proposal",
        source=TreatmentIndication.GENGIVOPLASTIA,
        target=TreatmentIndication.RECOBRIMENTO_RADICULAR,
        matches=lambda issue, proposed: "recobrimento" in proposed,
    ),
    IndicationRepair(
        name="adds_tooth_structure",
        source=TreatmentIndication.GENGIVOPLASTIA,
        target=TreatmentIndication.RESINA,
        matches=lambda issue, proposed: (
            _contains_any(proposed, ("aument", "acréscimo", "acrescimo", "alongar", "maior"))
            and "gengivoplastia" not in proposed
        ),
    ),
)

# Stages run in order, so a referral rewritten to gengivoplastia is checked
# again in the next stage. Inside a stage every rule sees the value the stage
# started with and the last matching rule wins.
INDICATION_REPAIR_STAGES: tuple[tuple[IndicationRepair, ...], ...] = (
    REFERRAL_REPAIRS,
    GINGIVOPLASTY_REPAIRS,
)

_DECREASE_WORDS = ("diminu", "reduz", "encurt")
_ADDITION_WORDS = ("acréscimo", "acrescimo", "adicionar")


def repair_treatment_indications(assessment: ClinicalAssessment) -> None:
    """
    Rewrite treatment_indication values that contradict their own proposal text.

    Only the patterns in INDICATION_REPAIR_STAGES are rewritten; anything
    else is left untouched. When several rules of a stage match, the last
    one decides, e.g. "aumentar incisal após gengivoplastia" with a recession
    issue ends up as recobrimento_radicular rather than resina.
    """
    for finding in assessment.suggestions:
        issue = (finding.current_issue or "").lower()
        proposed = (finding.proposed_change or "").lower()

        if _contains_any(proposed, _DECREASE_WORDS) and _contains_any(proposed, _ADDITION_WORDS):
            logger.info(
                f"Tooth {finding.tooth}: proposal mixes reduction and addition, left as-is"
            )

        for stage in INDICATION_REPAIR_STAGES:
            current = finding.treatment_indication
            chosen = None
            for repair in stage:
                if current == repair.source and repair.matches(issue, proposed):
                    chosen = repair
            if chosen is None:
                continue
            logger.info(
                f"Tooth {finding.tooth}: {chosen.name} rewrote "
                f"{current} -> {chosen.target.value}"
            )
            finding.treatment_indication = chosen.target.value


# =============================================================================
# Tooth and arch filters
# =============================================================================


def filter_invalid_teeth(assessment: ClinicalAssessment, allow_deciduous: bool = True) -> None:
    """Drop suggestions whose tooth is not a valid FDI code."""
    kept = []
    removed = []
    for finding in assessment.suggestions:
        if is_valid_fdi_code(finding.tooth, allow_deciduous):
            kept.append(finding)
        else:
            removed.append(finding.tooth)
    if removed:
        logger.info(f"Removed suggestions with invalid FDI codes: {removed}")
        assessment.suggestions = kept


def filter_minority_arch(assessment: ClinicalAssessment) -> None:
    """
    Keep a single-arch focus: when upper >= lower, drop lower-arch suggestions.

    Ties keep the upper arch.
    """
    upper = [s for s in assessment.suggestions if is_upper_arch(s.tooth)]
    lower = [s for s in assessment.suggestions if is_lower_arch(s.tooth)]
    if not lower or len(upper) < len(lower):
        return

    removed_teeth = ", ".join(s.tooth for s in lower)
    assessment.suggestions = [s for s in assessment.suggestions if not is_lower_arch(s.tooth)]
    logger.info(
        f"Removed {len(lower)} lower-arch suggestion(s) ({removed_teeth}); "
        f"upper={len(upper)} lower={len(lower)}"
    )
    assessment.observations.append(
        f"{len(lower)} sugestão(ões) de dentes inferiores ({removed_teeth}) removida(s) da "
        f"análise: foto mostra predominantemente a arcada superior."
    )


# =============================================================================
# Pipeline
# =============================================================================


def apply_safety_nets(
    assessment: ClinicalAssessment,
    additional_photos: Optional[AdditionalPhotos] = None,
    allow_deciduous: bool = True,
) -> None:
    """
    Apply every safety net, in order, to an assessment.

    Args:
        assessment: Assessment to repair in place
        additional_photos: Extra photos supplied with the analysis (face enables visagism)
        allow_deciduous: Accept deciduous quadrants 5-8 as valid teeth
    """
    has_face_photo = bool(additional_photos and additional_photos.face)

    reset_visagism_without_face_photo(assessment, has_face_photo)
    gate_gingival_contouring(assessment)
    annotate_overbite_risk(assessment)
    repair_treatment_indications(assessment)
    filter_invalid_teeth(assessment, allow_deciduous)
    filter_minority_arch(assessment)
