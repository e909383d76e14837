"""Fact-check report contract (the Hector verification output)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from jsonschema import Draft202012Validator


FACT_CHECK_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["accuracy_score"],
    "properties": {
        "accuracy_score": {"type": "number", "minimum": 0, "maximum": 100},
        "verification_status": {"type": "string"},
        "is_fabricated": {"type": "boolean"},
        "fact_check_results": {"type": "array"},
        "source_credibility": {},
        "legal_risk_assessment": {"type": "string"},
        "recommendations": {"type": "array"},
        "publish_recommendation": {"type": "string"},
        "legal_concerns": {"type": "array"},
        "misinformation_detected": {"type": "boolean"},
        "compliance_status": {"type": "string"},
    },
    "additionalProperties": True,
}


_VALIDATOR = Draft202012Validator(FACT_CHECK_SCHEMA)


def validate_fact_check(payload: Any) -> List[str]:
    """Return a list of human-readable validation errors (empty means valid)."""
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: list(x.path)):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors


@dataclass(frozen=True)
class FactCheckReport:
    accuracy_score: float
    verification_status: str = "unverified"
    is_fabricated: bool = False
    legal_risk: str = "LOW"
    fact_check_results: List[Any] = field(default_factory=list)
    source_credibility: Any = None
    recommendations: List[Any] = field(default_factory=list)
    publish_recommendation: str = ""
    legal_concerns: List[Any] = field(default_factory=list)
    misinformation_detected: bool = False
    compliance_status: str = ""


def to_fact_check_report(payload: Dict[str, Any]) -> FactCheckReport:
    return FactCheckReport(
        accuracy_score=float(payload.get("accuracy_score") or 0),
        verification_status=str(payload.get("verification_status") or "unverified"),
        is_fabricated=bool(payload.get("is_fabricated", False)),
        legal_risk=str(payload.get("legal_risk_assessment") or "LOW").strip().upper(),
        fact_check_results=list(payload.get("fact_check_results") or []),
        source_credibility=payload.get("source_credibility"),
        recommendations=list(payload.get("recommendations") or []),
        publish_recommendation=str(payload.get("publish_recommendation") or ""),
        legal_concerns=list(payload.get("legal_concerns") or []),
        misinformation_detected=bool(payload.get("misinformation_detected", False)),
        compliance_status=str(payload.get("compliance_status") or "").strip().upper(),
    )
