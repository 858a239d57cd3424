"""
Backend response normalizer.

Converts the backend's JSON payloads into AnomalyRecord and RuleSummary
models. Parsing is tolerant: a payload that is not a list fails the whole
response, while single entries missing a required field are dropped with a
warning so one bad row never empties the operator's list.

Anomaly Record Format:
    [
        {
            "flight_id": "3b1f2a9c",
            "callsign": "ELY001",
            "timestamp": 1752000000,
            "is_anomaly": true,
            "severity_cnn": 0.82,
            "severity_dense": 0.64,
            "full_report": {"summary": {...}, "layer_1_rules": {...}},
            "user_label": 1            // feedback history only
        },
        ...
    ]

Rule Catalog Format:
    [{"id": 4, "name": "Proximity", "description": "..."}, ...]
"""

from typing import Any, List

import structlog
from pydantic import ValidationError

from flightwatch.interfaces.anomaly_source import MalformedResponseError
from flightwatch.models.anomaly import AnomalyRecord, RuleSummary

logger = structlog.get_logger(__name__)


class BackendNormalizer:
    """
    Normalizes backend payloads to console models.

    Example:
        >>> records = BackendNormalizer.normalize_records(payload, source="live")
        >>> rules = BackendNormalizer.normalize_rules(catalog_payload)
    """

    @staticmethod
    def _require_list(payload: Any, source: str) -> List[Any]:
        if isinstance(payload, dict):
            # Some endpoints wrap the list: {"flights": [...]}
            for key in ("flights", "anomalies", "data"):
                if isinstance(payload.get(key), list):
                    return payload[key]
        if not isinstance(payload, list):
            raise MalformedResponseError(
                f"Expected a list from {source}, got {type(payload).__name__}"
            )
        return payload

    @staticmethod
    def normalize_record(raw: Any) -> AnomalyRecord:
        """
        Normalize a single anomaly entry.

        Args:
            raw: One JSON object from the backend.

        Returns:
            AnomalyRecord: Parsed record.

        Raises:
            MalformedResponseError: If required fields are missing or invalid.
        """
        if not isinstance(raw, dict):
            raise MalformedResponseError(f"Record is not an object: {raw!r}")
        try:
            return AnomalyRecord.model_validate(raw)
        except (ValidationError, ValueError, TypeError) as e:
            raise MalformedResponseError(f"Invalid anomaly record: {e}") from e

    @classmethod
    def normalize_records(cls, payload: Any, source: str = "backend") -> List[AnomalyRecord]:
        """
        Normalize an anomaly list response.

        Args:
            payload: Decoded JSON body.
            source: Endpoint name for logging.

        Returns:
            List[AnomalyRecord]: Parsed records, in payload order.

        Raises:
            MalformedResponseError: If the payload is not a list.
        """
        entries = cls._require_list(payload, source)
        records: List[AnomalyRecord] = []
        skipped = 0

        for entry in entries:
            try:
                records.append(cls.normalize_record(entry))
            except MalformedResponseError as e:
                skipped += 1
                logger.warning(
                    "anomaly_record_skipped",
                    source=source,
                    error=str(e),
                )

        if skipped:
            logger.warning(
                "anomaly_records_partially_parsed",
                source=source,
                parsed=len(records),
                skipped=skipped,
            )

        return records

    @classmethod
    def normalize_rules(cls, payload: Any) -> List[RuleSummary]:
        """
        Normalize the rule catalog response.

        Args:
            payload: Decoded JSON body.

        Returns:
            List[RuleSummary]: Parsed catalog entries.

        Raises:
            MalformedResponseError: If the payload is not a list.
        """
        entries = cls._require_list(payload, "rules")
        rules: List[RuleSummary] = []

        for entry in entries:
            try:
                rules.append(RuleSummary.model_validate(entry))
            except ValidationError as e:
                logger.warning("rule_entry_skipped", error=str(e))

        return rules
