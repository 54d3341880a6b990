"""
Regulatory ingredient compliance matching: GRAS / NDI / ODI vocabularies and major allergens.
"""
from .errors import InvalidReferenceData, ReferenceStoreUnavailable, RegcheckError, UnknownVocabulary
from .service import ComplianceService, build_default_service

__all__ = [
    "ComplianceService",
    "build_default_service",
    "InvalidReferenceData",
    "ReferenceStoreUnavailable",
    "RegcheckError",
    "UnknownVocabulary",
]
