"""
Admission Module
"""

from .gatekeeper import AdmissionDecision, AdmissionGatekeeper, ServerStats

__all__ = ["AdmissionDecision", "AdmissionGatekeeper", "ServerStats"]
