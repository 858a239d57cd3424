"""
Filter criteria for the displayed anomaly list.

FilterCriteria is an immutable value object. The presentation layer builds a
new one whenever the operator changes a filter; the filter engine derives
the displayed subset from it without touching the working set.
"""

from typing import FrozenSet, Tuple

from pydantic import BaseModel, Field, field_validator


# Selection values that are not a single layer name
ALL_LAYERS = "All"
ANY_COMBINATION = "Combination"
ALL_VERSIONS = "All"

# Detection layers the backend reports in summary.triggers
TRIGGER_LAYERS: Tuple[str, ...] = (
    "Rules",
    "XGBoost",
    "DeepDense",
    "DeepCNN",
    "Transformer",
    "Hybrid",
)


class FilterCriteria(BaseModel):
    """
    Operator filter selection.

    Attributes:
        query: Free-text query matched against flight id, callsign and
            trigger layer names (case-insensitive substring).
        min_score: Minimum confidence score (0-100).
        trigger_layer: "All", a single layer name, or "Combination".
        required_layers: Layers that must all be present when
            trigger_layer is "Combination". Empty means "at least two
            distinct layers".
        version: "All" or a version bucket label.
        show_normal: In feedback mode, reveal records labelled normal.

    Example:
        >>> criteria = FilterCriteria(query="ELY", min_score=70)
        >>> criteria.with_updates(trigger_layer="Rules").trigger_layer
        'Rules'
    """

    model_config = {"frozen": True, "extra": "forbid"}

    query: str = Field(default="", description="Free-text query")
    min_score: int = Field(
        default=0,
        description="Minimum confidence score",
        ge=0,
        le=100,
    )
    trigger_layer: str = Field(
        default=ALL_LAYERS,
        description="Selected trigger layer",
    )
    required_layers: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Layers required in combination mode",
    )
    version: str = Field(
        default=ALL_VERSIONS,
        description="Selected version bucket",
    )
    show_normal: bool = Field(
        default=False,
        description="Reveal records labelled normal in feedback mode",
    )

    @field_validator("query")
    @classmethod
    def strip_query(cls, v: str) -> str:
        """Ignore surrounding whitespace in the query."""
        return v.strip()

    @property
    def is_combination(self) -> bool:
        """Check if the trigger selection is the any-combination mode."""
        return self.trigger_layer == ANY_COMBINATION

    def with_updates(self, **changes) -> "FilterCriteria":
        """
        Return a copy with the given fields replaced and re-validated.

        Args:
            **changes: Field values to replace.

        Returns:
            FilterCriteria: New criteria instance.
        """
        return FilterCriteria(**{**self.model_dump(), **changes})
