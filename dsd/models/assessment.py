"""
Data models for the clinical assessment produced by the DSD pipeline.

A ClinicalAssessment is created once per analysis run by the extraction
client, mutated in place by the reconciler and the rule engine, and then
handed read-only to the simulation orchestrator and the coordinator.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

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
    WhiteningLevel,
)


# =============================================================================
# Inputs
# =============================================================================


class PhotoInput(BaseModel):
    """Already-decoded image bytes handed to the pipeline."""

    data: bytes = Field(..., description="Raw image bytes (JPEG/PNG)")
    mime_type: str = Field(default="image/jpeg", description="MIME type of the image")

    def as_file(self) -> tuple[bytes, str]:
        """Return the (content, mime_type) tuple the LLM client attaches."""
        return (self.data, self.mime_type)


class AdditionalPhotos(BaseModel):
    """Optional extra views that enrich the analysis."""

    smile45: Optional[PhotoInput] = Field(default=None, description="45 degree smile photo")
    face: Optional[PhotoInput] = Field(default=None, description="Full-face photo (enables visagism)")


class PatientPreferences(BaseModel):
    """What the patient asked for."""

    model_config = ConfigDict(use_enum_values=True)

    whitening_level: WhiteningLevel = Field(default=WhiteningLevel.NATURAL)
    desired_changes: list[str] = Field(default_factory=list)
    aesthetic_goals: Optional[str] = Field(default=None, description="Free-text goals")


class ClinicalToothFinding(BaseModel):
    """A per-tooth finding from an earlier clinical photo analysis."""

    tooth: str
    indication_reason: Optional[str] = None
    treatment_indication: Optional[str] = None


class ExtractionContext(BaseModel):
    """Everything besides the main photo that conditions the extraction prompt."""

    model_config = ConfigDict(use_enum_values=True)

    tooth_shape: ToothShape = Field(default=ToothShape.NATURAL)
    additional_photos: Optional[AdditionalPhotos] = None
    patient_preferences: Optional[PatientPreferences] = None
    clinical_observations: list[str] = Field(default_factory=list)
    clinical_teeth_findings: list[ClinicalToothFinding] = Field(default_factory=list)


# =============================================================================
# Assessment
# =============================================================================


class ToothFinding(BaseModel):
    """A single per-tooth suggestion."""

    model_config = ConfigDict(use_enum_values=True)

    tooth: str = Field(..., description="FDI tooth code, e.g. '11'")
    current_issue: str = Field(default="", description="What is wrong today")
    proposed_change: str = Field(default="", description="What should change")
    treatment_indication: Optional[TreatmentIndication] = Field(
        default=None,
        description="Treatment family implied by the proposal",
    )


class ClinicalAssessment(BaseModel):
    """Structured DSD assessment of one clinical photo."""

    model_config = ConfigDict(use_enum_values=True)

    facial_midline: FacialMidline
    dental_midline: DentalMidline
    smile_line: SmileLine
    buccal_corridor: BuccalCorridor
    occlusal_plane: OcclusalPlane
    golden_ratio_compliance: float = Field(..., ge=0, le=100)
    symmetry_score: float = Field(..., ge=0, le=100)
    confidence: Confidence
    suggestions: list[ToothFinding] = Field(
        default_factory=list,
        description="Ordered by display priority",
    )
    observations: list[str] = Field(
        default_factory=list,
        description="Clinical notes; rule-engine edits are appended here",
    )
    overbite_suspicion: Optional[OverbiteSuspicion] = None
    lip_thickness: Optional[LipThickness] = None
    smile_arc: Optional[SmileArc] = None

    # Visagism (only meaningful with a full-face photo)
    face_shape: Optional[FaceShape] = None
    perceived_temperament: Optional[Temperament] = None
    recommended_tooth_shape: Optional[ToothShape] = None
    visagism_notes: Optional[str] = None

    @property
    def has_visagism(self) -> bool:
        """True when any visagism field was populated."""
        return any(
            value is not None
            for value in (
                self.face_shape,
                self.perceived_temperament,
                self.recommended_tooth_shape,
                self.visagism_notes,
            )
        )


class SmileLineClassifierResult(BaseModel):
    """Second opinion on smile_line. Consumed only by the reconciler."""

    model_config = ConfigDict(use_enum_values=True)

    smile_line: SmileLine
    gingival_exposure_mm: float
    confidence: Confidence = Field(default=Confidence.MEDIA)
    justification: str = ""
