"""
Structured-output contract for the DSD analysis call.

ANALYZE_DSD_TOOL is the function the vision model is forced to call.
normalize_assessment_payload cleans its arguments before validation so that
harmless spelling drift (missing accents, numbers as strings) does not turn
into a malformed_response.
"""

import logging
import unicodedata
from enum import Enum
from typing import Any, Optional

from dsd.models.assessment import ClinicalAssessment
from dsd.models.enums import (
    BuccalCorridor,
    Confidence,
    DentalMidline,
    FaceShape,
    FacialMidline,
    LipThickness,
    OcclusalPlane,
    OverbiteSuspicion,
    SmileArc,
    SmileLine,
    Temperament,
    ToothShape,
    TreatmentIndication,
)
from dsd.utils.parsing import coerce_float

logger = logging.getLogger(__name__)

TOOL_NAME = "analyze_dsd"


def _values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def _enum_property(enum_cls: type[Enum], description: str) -> dict:
    return {"type": "string", "enum": _values(enum_cls), "description": description}


ANALYZE_DSD_TOOL: dict = {
    "type": "function",
    "function": {
        "name": TOOL_NAME,
        "description": "Retorna a análise DSD estruturada da foto do sorriso.",
        "parameters": {
            "type": "object",
            "properties": {
                "facial_midline": _enum_property(FacialMidline, "Linha média facial"),
                "dental_midline": _enum_property(DentalMidline, "Linha média dental"),
                "smile_line": _enum_property(SmileLine, "Exposição gengival ao sorrir"),
                "buccal_corridor": _enum_property(BuccalCorridor, "Corredor bucal"),
                "occlusal_plane": _enum_property(OcclusalPlane, "Plano oclusal"),
                "golden_ratio_compliance": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 100,
                    "description": "Aderência à proporção áurea (0-100)",
                },
                "symmetry_score": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 100,
                    "description": "Simetria do sorriso (0-100)",
                },
                "suggestions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "tooth": {"type": "string", "description": "Dente em notação FDI (ex: 11)"},
                            "current_issue": {"type": "string"},
                            "proposed_change": {"type": "string"},
                            "treatment_indication": _enum_property(
                                TreatmentIndication, "Tratamento indicado"
                            ),
                        },
                        "required": ["tooth", "current_issue", "proposed_change"],
                    },
                },
                "observations": {"type": "array", "items": {"type": "string"}},
                "confidence": _enum_property(Confidence, "Confiança da análise"),
                "lip_thickness": _enum_property(LipThickness, "Espessura labial"),
                "overbite_suspicion": _enum_property(OverbiteSuspicion, "Suspeita de sobremordida"),
                "face_shape": _enum_property(FaceShape, "Formato facial (requer foto da face)"),
                "perceived_temperament": _enum_property(Temperament, "Temperamento percebido"),
                "smile_arc": _enum_property(SmileArc, "Arco do sorriso"),
                "recommended_tooth_shape": _enum_property(ToothShape, "Formato dental recomendado"),
                "visagism_notes": {"type": "string"},
            },
            "required": [
                "facial_midline",
                "dental_midline",
                "smile_line",
                "buccal_corridor",
                "occlusal_plane",
                "golden_ratio_compliance",
                "symmetry_score",
                "suggestions",
                "observations",
                "confidence",
            ],
        },
    },
}


# =============================================================================
# Normalization
# =============================================================================

REQUIRED_ENUM_FIELDS: dict[str, type[Enum]] = {
    "facial_midline": FacialMidline,
    "dental_midline": DentalMidline,
    "smile_line": SmileLine,
    "buccal_corridor": BuccalCorridor,
    "occlusal_plane": OcclusalPlane,
    "confidence": Confidence,
}

OPTIONAL_ENUM_FIELDS: dict[str, type[Enum]] = {
    "overbite_suspicion": OverbiteSuspicion,
    "lip_thickness": LipThickness,
    "smile_arc": SmileArc,
    "face_shape": FaceShape,
    "perceived_temperament": Temperament,
    "recommended_tooth_shape": ToothShape,
}


def _fold(text: str) -> str:
    """Lowercase and strip accents: 'Média' -> 'media'."""
    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def match_enum_value(value: Any, enum_cls: type[Enum]) -> Optional[str]:
    """
    Map model output onto an enum value, ignoring case, accents and spaces.

    Returns:
        The canonical value, or None when nothing matches
    """
    if not isinstance(value, str):
        return None
    folded = _fold(value).replace(" ", "_").replace("-", "_")
    for member in enum_cls:
        if _fold(member.value) == folded:
            return member.value
    return None


def _normalize_score(value: Any) -> Any:
    number = coerce_float(value)
    if number is None:
        return value
    return min(max(number, 0.0), 100.0)


def _normalize_suggestion(raw: Any) -> Optional[dict]:
    if not isinstance(raw, dict):
        return None
    suggestion = dict(raw)
    tooth = suggestion.get("tooth")
    if isinstance(tooth, int) and not isinstance(tooth, bool):
        tooth = str(tooth)
    elif isinstance(tooth, float) and tooth.is_integer():
        tooth = str(int(tooth))
    suggestion["tooth"] = str(tooth).strip() if tooth is not None else ""
    for field in ("current_issue", "proposed_change"):
        value = suggestion.get(field)
        suggestion[field] = value if isinstance(value, str) else ""

    indication = suggestion.get("treatment_indication")
    matched = match_enum_value(indication, TreatmentIndication)
    if indication is not None and matched is None:
        logger.info(f"Dropping unknown treatment_indication {indication!r} for tooth {suggestion['tooth']}")
    suggestion["treatment_indication"] = matched
    return suggestion


def normalize_assessment_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Clean raw tool arguments before validation.

    Args:
        payload: Arguments exactly as the model produced them

    Returns:
        A new dict ready for ClinicalAssessment.model_validate
    """
    data = dict(payload)

    for field, enum_cls in REQUIRED_ENUM_FIELDS.items():
        matched = match_enum_value(data.get(field), enum_cls)
        if matched is not None:
            data[field] = matched

    for field, enum_cls in OPTIONAL_ENUM_FIELDS.items():
        if field in data:
            data[field] = match_enum_value(data[field], enum_cls)

    for field in ("golden_ratio_compliance", "symmetry_score"):
        if field in data:
            data[field] = _normalize_score(data[field])

    suggestions = data.get("suggestions") or []
    if not isinstance(suggestions, list):
        suggestions = []
    data["suggestions"] = [s for s in map(_normalize_suggestion, suggestions) if s is not None]

    observations = data.get("observations") or []
    if isinstance(observations, str):
        observations = [observations]
    data["observations"] = [str(obs) for obs in observations if obs]

    notes = data.get("visagism_notes")
    if notes is not None and not isinstance(notes, str):
        data["visagism_notes"] = str(notes)

    return data


def parse_assessment(payload: dict[str, Any]) -> ClinicalAssessment:
    """Normalize and validate tool arguments. Raises pydantic.ValidationError."""
    return ClinicalAssessment.model_validate(normalize_assessment_payload(payload))
