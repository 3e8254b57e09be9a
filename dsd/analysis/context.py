"""
Prompt context sections for the DSD analysis call.

Each builder returns an empty string when it has nothing to add, so the
templates can interpolate them unconditionally.
"""

from typing import Optional

from dsd.models.assessment import (
    AdditionalPhotos,
    ClinicalToothFinding,
    ExtractionContext,
    PatientPreferences,
)
from dsd.utils.parsing import sanitize_for_prompt
from dsd.utils.prompt_loader import render_prompt

WHITENING_LABELS = {
    "natural": "natural (1-2 tons mais claro)",
    "white": "branco (clareamento perceptível)",
    "hollywood": "hollywood (branco máximo)",
}


def build_photo_context(additional_photos: Optional[AdditionalPhotos]) -> str:
    """Announce the extra photos attached after the main one."""
    if not additional_photos:
        return ""

    lines = []
    image_index = 2
    if additional_photos.smile45:
        lines.append(
            f"- Imagem {image_index}: sorriso em 45°. Use para avaliar corredor bucal "
            f"e projeção dos dentes."
        )
        image_index += 1
    if additional_photos.face:
        lines.append(
            f"- Imagem {image_index}: face completa. Use para visagismo (formato facial "
            f"e temperamento percebido)."
        )
    if not lines:
        return ""
    return "## Fotos adicionais\n" + "\n".join(lines)


def build_preferences_context(preferences: Optional[PatientPreferences]) -> str:
    """Describe what the patient asked for, with user text sanitized."""
    if not preferences:
        return ""

    level = preferences.whitening_level
    lines = [f"- Nível de clareamento desejado: {WHITENING_LABELS.get(level, level)}"]
    changes = [sanitize_for_prompt(change, 200) for change in preferences.desired_changes]
    changes = [change for change in changes if change]
    if changes:
        lines.append("- Mudanças desejadas: " + "; ".join(changes))
    goals = sanitize_for_prompt(preferences.aesthetic_goals, 500)
    if goals:
        lines.append(f"- Objetivos estéticos (texto do paciente): \"{goals}\"")
    return "## Preferências do paciente\n" + "\n".join(lines)


def build_clinical_context(
    observations: list[str],
    findings: list[ClinicalToothFinding],
) -> str:
    """Summarize an earlier clinical analysis so the DSD stays consistent with it."""
    if not observations and not findings:
        return ""

    lines = []
    for observation in observations:
        cleaned = sanitize_for_prompt(observation, 300)
        if cleaned:
            lines.append(f"- {cleaned}")
    for finding in findings:
        parts = [f"- Dente {sanitize_for_prompt(finding.tooth, 4)}"]
        if finding.treatment_indication:
            parts.append(f"indicação: {sanitize_for_prompt(finding.treatment_indication, 40)}")
        if finding.indication_reason:
            parts.append(f"motivo: {sanitize_for_prompt(finding.indication_reason, 200)}")
        lines.append(", ".join(parts))
    return "## Achados clínicos prévios\n" + "\n".join(lines)


def build_analysis_prompt(context: ExtractionContext) -> str:
    """Render the system prompt for the structured analysis call."""
    return render_prompt(
        "dsd_analysis",
        "analysis",
        tooth_shape=context.tooth_shape,
        photo_context=build_photo_context(context.additional_photos),
        preferences_context=build_preferences_context(context.patient_preferences),
        clinical_context=build_clinical_context(
            context.clinical_observations,
            context.clinical_teeth_findings,
        ),
    )
