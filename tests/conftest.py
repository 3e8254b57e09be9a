"""
Pytest configuration and shared fixtures for the test suite.
"""

from typing import Optional

import pytest

from dsd.llm.client import MockLLMClient
from dsd.models.assessment import ClinicalAssessment, PhotoInput, ToothFinding
from dsd.storage.memory import InMemoryEvaluationStore, InMemoryObjectStorage


# ============================================================================
# Assessment factories
# ============================================================================

@pytest.fixture
def make_finding():
    """Factory for tooth findings."""
    def _create(
        tooth: str = "11",
        current_issue: str = "Desgaste incisal",
        proposed_change: str = "Reanatomização em resina composta",
        treatment_indication: Optional[str] = "resina",
    ) -> ToothFinding:
        return ToothFinding(
            tooth=tooth,
            current_issue=current_issue,
            proposed_change=proposed_change,
            treatment_indication=treatment_indication,
        )
    return _create


@pytest.fixture
def make_assessment():
    """Factory for assessments with sensible defaults."""
    def _create(**overrides) -> ClinicalAssessment:
        data = {
            "facial_midline": "centrada",
            "dental_midline": "alinhada",
            "smile_line": "média",
            "buccal_corridor": "adequado",
            "occlusal_plane": "nivelado",
            "golden_ratio_compliance": 72,
            "symmetry_score": 80,
            "confidence": "alta",
            "suggestions": [],
            "observations": [],
        }
        data.update(overrides)
        return ClinicalAssessment.model_validate(data)
    return _create


@pytest.fixture
def analysis_payload():
    """Raw analyze_dsd tool arguments as a model would return them."""
    return {
        "facial_midline": "centrada",
        "dental_midline": "desviada_direita",
        "smile_line": "media",
        "buccal_corridor": "adequado",
        "occlusal_plane": "nivelado",
        "golden_ratio_compliance": "68",
        "symmetry_score": 75,
        "confidence": "alta",
        "suggestions": [
            {
                "tooth": 11,
                "current_issue": "Bordo incisal fraturado",
                "proposed_change": "Aumentar comprimento incisal em resina (~1.5mm)",
                "treatment_indication": "resina",
            },
            {
                "tooth": "21",
                "current_issue": "Desgaste",
                "proposed_change": "Reanatomização",
                "treatment_indication": "Resina",
            },
        ],
        "observations": ["Sorriso harmônico com leve desvio de linha média."],
        "overbite_suspicion": "nao",
        "lip_thickness": "médio",
    }


# ============================================================================
# Collaborators
# ============================================================================

@pytest.fixture
def photo():
    """A tiny fake JPEG photo."""
    return PhotoInput(data=b"\xff\xd8\xff\xe0fake-jpeg-bytes", mime_type="image/jpeg")


@pytest.fixture
def mock_llm_client():
    """Mock LLM client with no canned responses."""
    return MockLLMClient()


@pytest.fixture
def object_storage():
    return InMemoryObjectStorage()


@pytest.fixture
def evaluation_store():
    return InMemoryEvaluationStore()
