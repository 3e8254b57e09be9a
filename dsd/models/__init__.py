"""Data models for the DSD pipeline."""

from dsd.models.assessment import (
    AdditionalPhotos,
    ClinicalAssessment,
    ClinicalToothFinding,
    ExtractionContext,
    PatientPreferences,
    PhotoInput,
    SmileLineClassifierResult,
    ToothFinding,
)
from dsd.models.results import (
    ContralateralProtocol,
    DSDRequest,
    DSDResult,
    EvaluationProtocolRecord,
    ProtocolSyncReport,
    SimulationOutcome,
)

__all__ = [
    "AdditionalPhotos",
    "ClinicalAssessment",
    "ClinicalToothFinding",
    "ExtractionContext",
    "PatientPreferences",
    "PhotoInput",
    "SmileLineClassifierResult",
    "ToothFinding",
    "ContralateralProtocol",
    "DSDRequest",
    "DSDResult",
    "EvaluationProtocolRecord",
    "ProtocolSyncReport",
    "SimulationOutcome",
]
