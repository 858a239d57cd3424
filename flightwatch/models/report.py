"""
Typed accessor for the backend's full anomaly report.

The backend owns the structure of ``full_report`` and changes it between
releases. The console only needs a handful of fields, so this module reads
them leniently and exposes them as a small typed view. Missing or wrongly
typed fields fall back to empty values; reading a report never raises.

Report Format (relevant subset):
    {
        "summary": {
            "is_anomaly": true,
            "confidence_score": 87.5,
            "triggers": ["Rules", "XGBoost"]
        },
        "layer_1_rules": {
            "report": {
                "matched_rules": [{"id": 4, "name": "Proximity"}, ...]
            }
        }
    }
"""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0


class ReportView(BaseModel):
    """
    The fields of a backend report the console actually reads.

    Attributes:
        confidence_score: Summary confidence score (0-100), 0 when absent.
        triggers: Detection layers that flagged the flight.
        rule_names: Names of matched first-layer rules.
        rule_ids: Identifiers of matched first-layer rules.
        is_anomaly: Summary verdict, None when the report has no summary.
        has_summary: Whether the report carried a summary section.

    Example:
        >>> view = ReportView.from_report({"summary": {"confidence_score": 91}})
        >>> view.confidence_score
        91.0
    """

    model_config = {"frozen": True}

    confidence_score: float = 0.0
    triggers: List[str] = Field(default_factory=list)
    rule_names: List[str] = Field(default_factory=list)
    rule_ids: List[int] = Field(default_factory=list)
    is_anomaly: Optional[bool] = None
    has_summary: bool = False

    @classmethod
    def from_report(cls, full_report: Optional[Dict[str, Any]]) -> "ReportView":
        """
        Build a view from an opaque backend report.

        Args:
            full_report: The report as received, possibly None or malformed.

        Returns:
            ReportView: Typed view with safe defaults for anything missing.
        """
        report = _mapping(full_report)
        summary = _mapping(report.get("summary"))

        raw_triggers = summary.get("triggers")
        triggers = (
            [str(t) for t in raw_triggers if isinstance(t, (str, int))]
            if isinstance(raw_triggers, list)
            else []
        )

        matched = _mapping(_mapping(report.get("layer_1_rules")).get("report")).get(
            "matched_rules"
        )
        rule_names: List[str] = []
        rule_ids: List[int] = []
        if isinstance(matched, list):
            for rule in matched:
                rule = _mapping(rule)
                name = rule.get("name")
                if isinstance(name, str):
                    rule_names.append(name)
                rule_id = rule.get("id")
                if isinstance(rule_id, int) and not isinstance(rule_id, bool):
                    rule_ids.append(rule_id)

        flag = summary.get("is_anomaly")

        return cls(
            confidence_score=_number(summary.get("confidence_score")),
            triggers=triggers,
            rule_names=rule_names,
            rule_ids=rule_ids,
            is_anomaly=flag if isinstance(flag, bool) else None,
            has_summary=bool(summary),
        )
