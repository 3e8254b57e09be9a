"""Tests for the smile-line reconciler."""

from dsd.analysis.reconciler import reconcile
from dsd.models.assessment import SmileLineClassifierResult


def _classifier(smile_line="alta", confidence="alta", exposure=4.0):
    return SmileLineClassifierResult(
        smile_line=smile_line,
        gingival_exposure_mm=exposure,
        confidence=confidence,
        justification="Faixa gengival visível acima dos centrais.",
    )


class TestReconcile:
    """Tests for reconcile."""

    def test_none_is_noop(self, make_assessment):
        """Test that a degraded classifier changes nothing."""
        assessment = make_assessment(smile_line="baixa")

        reconcile(assessment, None)

        assert assessment.smile_line == "baixa"
        assert assessment.observations == []

    def test_confident_disagreement_overrides(self, make_assessment):
        """Test that a confident classifier overrides and explains with the exposure."""
        assessment = make_assessment(smile_line="baixa")

        reconcile(assessment, _classifier("alta", "alta", 4.0))

        assert assessment.smile_line == "alta"
        assert len(assessment.observations) == 1
        assert "4.0mm" in assessment.observations[0]

    def test_low_confidence_does_not_override(self, make_assessment):
        """Test that a low-confidence classifier below threshold leaves smile_line alone."""
        assessment = make_assessment(smile_line="baixa")

        reconcile(assessment, _classifier("alta", "baixa", 1.0))

        assert assessment.smile_line == "baixa"
        assert assessment.observations == []

    def test_threshold_bypasses_confidence(self, make_assessment):
        """Test that >= 3mm exposure forces alta even with low confidence."""
        assessment = make_assessment(smile_line="baixa")

        reconcile(assessment, _classifier("média", "baixa", 3.0))

        assert assessment.smile_line == "alta"
        assert len(assessment.observations) == 1
        assert "3.0mm" in assessment.observations[0]

    def test_threshold_after_categorical_override(self, make_assessment):
        """Test that a média override with large exposure still ends at alta."""
        assessment = make_assessment(smile_line="baixa")

        reconcile(assessment, _classifier("média", "média", 3.5))

        assert assessment.smile_line == "alta"
        assert len(assessment.observations) == 2

    def test_agreement_is_silent(self, make_assessment):
        """Test that agreeing verdicts below threshold add nothing."""
        assessment = make_assessment(smile_line="média")

        reconcile(assessment, _classifier("média", "alta", 1.5))

        assert assessment.smile_line == "média"
        assert assessment.observations == []

    def test_already_alta_with_large_exposure(self, make_assessment):
        """Test that an alta assessment is not annotated again by the threshold."""
        assessment = make_assessment(smile_line="alta")

        reconcile(assessment, _classifier("alta", "alta", 5.0))

        assert assessment.smile_line == "alta"
        assert assessment.observations == []
