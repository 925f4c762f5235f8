"""
Investor Mandate Model

The mandate is stored as a loosely-typed JSON document. ``Mandate.from_raw``
is the single deserialization boundary: unknown keys are dropped and
malformed values become None so scoring never sees untyped data.
"""
import json
import math
import re
from typing import Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

_LEADING_NUMBER = re.compile(r"^\s*(\d+(?:\.\d+)?)")


def coerce_number(value: Any) -> Optional[float]:
    """Return a finite float for numbers or numeric strings, else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.replace(",", "").strip()
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
    return number if math.isfinite(number) else None


def parse_yield_target(value: Any) -> Optional[float]:
    """
    Parse a yield target such as ``"7-9%"``, ``"8%"`` or ``6.5``.

    The leading number before "%" or "-" wins. Returns None when nothing
    numeric leads the string.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return coerce_number(value)
    if not isinstance(value, str):
        return None
    match = _LEADING_NUMBER.match(value)
    if not match:
        return None
    return float(match.group(1))


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class Mandate(BaseModel):
    """
    Investment mandate of an investor.

    Attributes:
        property_types: Accepted property types (apartment, villa, ...)
        preferred_areas: Preferred areas or communities
        min_investment: Lower ticket bound in AED
        max_investment: Upper ticket bound in AED
        preferred_bedrooms: Accepted bedroom counts
        min_size: Minimum size in sqft
        max_size: Maximum size in sqft
        yield_target: Raw yield target as entered ("7-9%", 8, ...)
        risk_tolerance: low, medium or high
        open: Investor accepts any area
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    property_types: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("propertyTypes", "property_types"),
    )
    preferred_areas: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("preferredAreas", "preferred_areas"),
    )
    min_investment: Optional[float] = Field(
        None, validation_alias=AliasChoices("minInvestment", "min_investment", "budget_min")
    )
    max_investment: Optional[float] = Field(
        None, validation_alias=AliasChoices("maxInvestment", "max_investment", "budget_max")
    )
    preferred_bedrooms: List[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("preferredBedrooms", "preferred_bedrooms"),
    )
    min_size: Optional[float] = Field(None, validation_alias=AliasChoices("minSize", "min_size"))
    max_size: Optional[float] = Field(None, validation_alias=AliasChoices("maxSize", "max_size"))
    yield_target: Optional[Union[str, float]] = Field(
        None, validation_alias=AliasChoices("yieldTarget", "yield_target")
    )
    risk_tolerance: str = Field("medium", validation_alias=AliasChoices("riskTolerance", "risk_tolerance"))
    open: bool = False

    @field_validator("property_types", "preferred_areas", mode="before")
    @classmethod
    def _clean_strings(cls, value: Any) -> List[str]:
        return _string_list(value)

    @field_validator("min_investment", "max_investment", "min_size", "max_size", mode="before")
    @classmethod
    def _clean_number(cls, value: Any) -> Optional[float]:
        number = coerce_number(value)
        return number if number is not None and number > 0 else None

    @field_validator("preferred_bedrooms", mode="before")
    @classmethod
    def _clean_bedrooms(cls, value: Any) -> List[int]:
        if not isinstance(value, (list, tuple)):
            value = [value] if value is not None else []
        bedrooms = []
        for item in value:
            number = coerce_number(item)
            if number is not None and number >= 0 and number == int(number):
                bedrooms.append(int(number))
        return bedrooms

    @field_validator("yield_target", mode="before")
    @classmethod
    def _clean_yield(cls, value: Any) -> Optional[Union[str, float]]:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float, str)):
            return value
        return None

    @field_validator("risk_tolerance", mode="before")
    @classmethod
    def _clean_risk(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in ("low", "medium", "high"):
            return value.strip().lower()
        return "medium"

    @field_validator("open", mode="before")
    @classmethod
    def _clean_open(cls, value: Any) -> bool:
        return value is True or (isinstance(value, str) and value.strip().lower() == "true")

    @property
    def yield_target_pct(self) -> Optional[float]:
        """Numeric yield target in percent, or None if absent/unparseable."""
        return parse_yield_target(self.yield_target)

    @property
    def is_open(self) -> bool:
        return self.open or not self.preferred_areas

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["Mandate"]:
        """
        Build a Mandate from a stored JSON document.

        Args:
            raw: dict, JSON string or None

        Returns:
            Mandate, or None when the document is absent or not an object
        """
        if raw is None:
            return None
        if isinstance(raw, Mandate):
            return raw
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("mandate_json_invalid")
                return None
        if not isinstance(raw, dict):
            logger.warning("mandate_shape_invalid", raw_type=type(raw).__name__)
            return None
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            logger.warning("mandate_validation_failed", error=str(e))
            return None
