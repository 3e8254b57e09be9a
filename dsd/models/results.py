"""
Pipeline outputs and protocol-sync records.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from dsd.models.assessment import (
    AdditionalPhotos,
    ClinicalAssessment,
    ClinicalToothFinding,
    PatientPreferences,
    PhotoInput,
)
from dsd.models.enums import ToothShape


class DSDRequest(BaseModel):
    """One pipeline run, as handed over by the authenticated caller."""

    model_config = ConfigDict(use_enum_values=True)

    photo: PhotoInput
    actor_id: str = Field(..., description="Authenticated user running the analysis")
    evaluation_id: Optional[str] = Field(default=None, description="Record to persist onto")
    tooth_shape: ToothShape = Field(default=ToothShape.NATURAL)
    additional_photos: Optional[AdditionalPhotos] = None
    patient_preferences: Optional[PatientPreferences] = None
    clinical_observations: list[str] = Field(default_factory=list)
    clinical_teeth_findings: list[ClinicalToothFinding] = Field(default_factory=list)
    analysis_only: bool = Field(default=False, description="Skip the simulation step")
    existing_assessment: Optional[ClinicalAssessment] = Field(
        default=None,
        description="Regenerate the simulation from this assessment without re-analysis",
    )


class SimulationOutcome(BaseModel):
    """The winning simulation attempt."""

    path: str = Field(..., description="Storage reference of the uploaded image")
    model: str
    variation: int
    lips_moved: Optional[bool] = Field(
        default=None,
        description="Lip check verdict; None when the check is disabled",
    )


class DSDResult(BaseModel):
    """What the pipeline returns to its caller."""

    analysis: ClinicalAssessment
    simulation_path: Optional[str] = Field(default=None, description="Storage reference")
    simulation_note: Optional[str] = Field(
        default=None,
        description="Why the simulation may be unreliable, when applicable",
    )
    lips_moved: Optional[bool] = Field(
        default=None,
        description="The simulation changed the lips; None when not checked",
    )


class EvaluationProtocolRecord(BaseModel):
    """The protocol-related columns of one evaluation row."""

    id: str
    tooth: Optional[str] = None
    treatment_type: Optional[str] = None
    stratification_protocol: Optional[Any] = None
    cementation_protocol: Optional[Any] = None
    generic_protocol: Optional[Any] = None
    recommended_resin_id: Optional[str] = None
    recommendation_text: Optional[str] = None


class ContralateralProtocol(BaseModel):
    """A finalized protocol found on the mirrored tooth of the same patient."""

    evaluation_id: str
    tooth: str
    treatment_type: Optional[str] = None
    protocol: Any = None


class ProtocolSyncReport(BaseModel):
    """Outcome of one group protocol sync."""

    groups_synced: int = 0
    groups_failed: int = 0
    evaluations_updated: int = 0
