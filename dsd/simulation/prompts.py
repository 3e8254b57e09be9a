"""
Simulation prompt construction.

Everything here is a pure function of the assessment and the user's
preferences: mode detection, suggestion filtering, text simplification,
the deterministic seed and the simulation_note.
"""

import base64
import hashlib
import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

from dsd.models.assessment import ClinicalAssessment, PatientPreferences, ToothFinding
from dsd.models.enums import Confidence, SimulationMode, WhiteningLevel
from dsd.rules.fdi import get_contralateral_tooth, is_lower_arch
from dsd.rules.safety_nets import mentions_gingival_contouring
from dsd.utils.parsing import sanitize_analysis_text
from dsd.utils.prompt_loader import render_prompt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WhiteningConfig:
    instruction: str
    intensity: str


WHITENING_INSTRUCTIONS: dict[str, WhiteningConfig] = {
    WhiteningLevel.NATURAL.value: WhiteningConfig(
        instruction=(
            "Make ALL visible teeth 1-2 shades lighter (A1/A2). Subtle, natural "
            "whitening that looks realistic."
        ),
        intensity="NATURAL",
    ),
    WhiteningLevel.WHITE.value: WhiteningConfig(
        instruction=(
            "Make ALL visible teeth clearly whiter (BL1/BL2). Noticeable whitening "
            "but not extreme."
        ),
        intensity="NOTICEABLE",
    ),
    WhiteningLevel.HOLLYWOOD.value: WhiteningConfig(
        instruction=(
            "Make ALL visible teeth EXTREMELY WHITE (BL3/0M1). Pure bright white like "
            "porcelain veneers. This is the MAXIMUM possible whitening."
        ),
        intensity="MAXIMUM",
    ),
}

LOWER_ARCH_INSTRUCTION = (
    "- Lower teeth are visible: apply the same whitening and keep their "
    "perspective and position unchanged."
)
WHITE_BALANCE_INSTRUCTION = (
    "Keep the original white balance and lighting. Do not add color casts or filters."
)

CONDENSED_THRESHOLD = 5
MAX_CHANGE_LENGTH = 120


# =============================================================================
# Mode detection
# =============================================================================

RECONSTRUCTION_ISSUE_KEYWORDS = ("ausente", "destruição", "destruído", "fratura", "raiz residual")
RECONSTRUCTION_CHANGE_KEYWORDS = ("implante", "coroa total", "extração")
INTRAORAL_MARKERS = ("afastador", "retrator", "close-up extremo")


def needs_reconstruction(finding: ToothFinding) -> bool:
    issue = finding.current_issue.lower()
    change = finding.proposed_change.lower()
    return (
        any(keyword in issue for keyword in RECONSTRUCTION_ISSUE_KEYWORDS)
        or any(keyword in change for keyword in RECONSTRUCTION_CHANGE_KEYWORDS)
    )


def is_intraoral_capture(observations: list[str]) -> bool:
    """Observations describe a retracted or extreme close-up shot."""
    for observation in observations:
        text = observation.lower()
        if any(marker in text for marker in INTRAORAL_MARKERS):
            return True
        if "intraoral" in text and ("interna" in text or "sem lábio" in text):
            return True
    return False


def classify_simulation_mode(assessment: ClinicalAssessment) -> SimulationMode:
    """Pick the prompt variant. Reconstruction wins over intraoral."""
    if any(needs_reconstruction(s) for s in assessment.suggestions):
        return SimulationMode.RECONSTRUCTION
    if is_intraoral_capture(assessment.observations):
        return SimulationMode.INTRAORAL
    return SimulationMode.STANDARD


# =============================================================================
# Suggestion text
# =============================================================================

DESTRUCTIVE_KEYWORDS = (
    "reconstruir",
    "destruição severa",
    "perda total",
    "exodontia",
    "extração indicada",
)

_SIMPLIFICATIONS: list[tuple[str, str]] = [
    (r"\(?\s*~?\d+([.,]\d+)?\s*mm\s*\)?", ""),
    (r"\bem resina\s*(composta)?\b", ""),
    (r"\bresina\s*(composta)?\b", ""),
    (r"\brecontorno estético/suaviza[çc][ãa]o\b", "leve suavização"),
    (r"\breanatomiza[çc][ãa]o\b", "leve ajuste de contorno"),
    (r"\breconstru[çc][ãa]o\b", "leve correção"),
    (r"\brecontorno estético\b", "leve suavização"),
    (r"\baumentar volume e comprimento\b", "leve aumento incisal"),
    (r"\baumentar volume\b", "leve aumento de volume"),
    (r"\baumentar comprimento\b", "leve extensão incisal"),
    (r"\brestabelecer comprimento e contorno\b", "leve melhoria do contorno incisal"),
    (r"\(\s*\)", ""),
    (r"\s+,", ","),
    (r"\s{2,}", " "),
    (r"\s*,\s*,", ","),
    (r"^\s*,\s*", ""),
]


def simplify_for_image_edit(proposed_change: str) -> str:
    """
    Turn a clinical proposal into a short, soft visual instruction.

    Millimetre targets and material names mean nothing to an image model and
    push it to over-edit, so they are stripped and verbs are softened.
    """
    text = proposed_change
    for pattern, replacement in _SIMPLIFICATIONS:
        text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
    text = text.strip()
    if len(text) > MAX_CHANGE_LENGTH:
        text = text[: MAX_CHANGE_LENGTH - 3] + "..."
    return text


def filter_simulation_suggestions(suggestions: list[ToothFinding]) -> list[ToothFinding]:
    """Drop gingival and destructive proposals that an edit must not render."""
    kept = []
    for finding in suggestions:
        change = finding.proposed_change.lower()
        if mentions_gingival_contouring(finding):
            continue
        if any(keyword in change for keyword in DESTRUCTIVE_KEYWORDS):
            continue
        kept.append(finding)
    return kept


def build_corrections(suggestions: list[ToothFinding]) -> str:
    """Corrections block: condensed for many teeth, one line per tooth otherwise."""
    if not suggestions:
        return "- No specific corrections. Keep tooth shapes exactly as they are."

    if len(suggestions) >= CONDENSED_THRESHOLD:
        teeth = ", ".join(s.tooth for s in suggestions)
        return (
            f"Teeth {teeth} need MINOR refinements only, not a redesign:\n"
            "- Incisal edges: slight harmonization (smooth chips, equalize minor wear)\n"
            "- Contours: gentle refinement of angles, do not reshape the tooth\n"
            "- Proportions: minimal adjustment\n"
            "- The result must read as the same smile, slightly polished"
        )

    lines = []
    for finding in suggestions:
        change = simplify_for_image_edit(sanitize_analysis_text(finding.proposed_change, 400))
        if change:
            lines.append(f"- Tooth {finding.tooth}: {change}")
    return "\n".join(lines) or "- No specific corrections. Keep tooth shapes exactly as they are."


def build_reconstruction_instructions(assessment: ClinicalAssessment) -> str:
    """One 'Dente X: COPIE do Y' line per tooth that must be rebuilt."""
    lines = []
    for finding in assessment.suggestions:
        if not needs_reconstruction(finding):
            continue
        reference = get_contralateral_tooth(finding.tooth) or "dente vizinho"
        lines.append(f"- Dente {finding.tooth}: COPIE do {reference}")
    return "\n".join(lines)


# =============================================================================
# Prompt
# =============================================================================


@dataclass(frozen=True)
class SimulationPrompt:
    mode: SimulationMode
    text: str


def build_simulation_prompt(
    assessment: ClinicalAssessment,
    tooth_shape: str = "natural",
    preferences: Optional[PatientPreferences] = None,
) -> SimulationPrompt:
    """
    Render the image-edit prompt for an assessment.

    Args:
        assessment: Final (reconciled, post-processed) assessment
        tooth_shape: User's tooth-shape preference, used without a visagism recommendation
        preferences: Patient preferences (whitening level)

    Returns:
        The chosen mode and the prompt text
    """
    mode = classify_simulation_mode(assessment)
    level = preferences.whitening_level if preferences else WhiteningLevel.NATURAL.value
    whitening = WHITENING_INSTRUCTIONS.get(level, WHITENING_INSTRUCTIONS[WhiteningLevel.NATURAL.value])

    suggestions = filter_simulation_suggestions(assessment.suggestions)
    has_lower_arch = any(is_lower_arch(s.tooth) for s in assessment.suggestions)

    text = render_prompt(
        mode.value,
        "simulation",
        whitening_title=" - WHITENING REQUESTED" if level != WhiteningLevel.NATURAL else "",
        whitening_intensity=whitening.intensity,
        whitening_instruction=f"- {whitening.instruction}",
        corrections=build_corrections(suggestions),
        reconstruction_instructions=build_reconstruction_instructions(assessment),
        tooth_shape=assessment.recommended_tooth_shape or tooth_shape,
        smile_arc=assessment.smile_arc or "consonante",
        lower_arch_instruction=LOWER_ARCH_INSTRUCTION if has_lower_arch else "",
        output_contract=format_output_contract(),
    )
    logger.info(
        f"Simulation prompt built: mode={mode.value}, whitening={whitening.intensity}, "
        f"{len(suggestions)} correction(s)"
    )
    return SimulationPrompt(mode=mode, text=text)


def format_output_contract() -> str:
    """Common rules every simulation mode must satisfy."""
    return render_prompt(
        "output_contract",
        "simulation",
        white_balance_instruction=WHITE_BALANCE_INSTRUCTION,
    )


def compute_image_seed(image: bytes, now: Optional[float] = None) -> int:
    """
    Deterministic seed from the photo, varied by the current minute.

    The same photo regenerated within a minute gets the same seed.
    """
    prefix = base64.b64encode(image)[:1000]
    digest = hashlib.sha256(prefix).digest()
    base = int.from_bytes(digest[:4], "big") & 0x7FFFFFFF
    minute = int((time.time() if now is None else now) // 60)
    return (base + minute % 1000) & 0x7FFFFFFF


# =============================================================================
# Reliability note
# =============================================================================

SEVERE_DESTRUCTION_KEYWORDS = (
    "ausente",
    "destruição",
    "raiz residual",
    "implante",
    "extração",
    "fratura extensa",
    "destruído",
    "coroa total",
    "prótese",
    "sem coroa",
)

SEVERE_DESTRUCTION_NOTE = (
    "Caso apresenta destruição dental significativa (dente ausente, fratura extensa "
    "ou necessidade de implante/coroa). A simulação visual pode não representar o "
    "resultado final com precisão."
)
INTRAORAL_LOW_CONFIDENCE_NOTE = (
    "Foto intraoral com afastador detectada. Recomenda-se foto do sorriso completo "
    "para simulação mais precisa."
)


def has_severe_destruction(assessment: ClinicalAssessment) -> bool:
    texts = [obs.lower() for obs in assessment.observations]
    for finding in assessment.suggestions:
        texts.append(finding.current_issue.lower())
        texts.append(finding.proposed_change.lower())
    return any(keyword in text for text in texts for keyword in SEVERE_DESTRUCTION_KEYWORDS)


def detect_simulation_note(assessment: ClinicalAssessment) -> Optional[str]:
    """Explain why the simulation may be unreliable, or None."""
    if has_severe_destruction(assessment):
        return SEVERE_DESTRUCTION_NOTE
    if assessment.confidence == Confidence.BAIXA and is_intraoral_capture(assessment.observations):
        return INTRAORAL_LOW_CONFIDENCE_NOTE
    return None
