"""Vision analysis: structured extraction, smile-line second opinion, reconciliation."""

from dsd.analysis.extractor import AssessmentExtractor
from dsd.analysis.reconciler import reconcile
from dsd.analysis.smile_line import SmileLineClassifier

__all__ = ["AssessmentExtractor", "SmileLineClassifier", "reconcile"]
