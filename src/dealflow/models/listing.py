"""
Listing and Portfolio Models

Pydantic models for property candidates, holdings and trust policy.
"""
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.dealflow.models.mandate import coerce_number


READINESS_NEEDS_VERIFICATION = "NEEDS_VERIFICATION"
READINESS_READY_FOR_MEMO = "READY_FOR_MEMO"


class ListingCandidate(BaseModel):
    """
    Property candidate as read from the CRM listings table.

    Attributes:
        id: Listing identifier
        title: Listing headline
        area: Community or area name
        type: Property type (apartment, villa, ...)
        price: Asking price in AED
        size: Size in sqft
        bedrooms: Bedroom count
        status: CRM status (available, reserved, ...)
        trust_score: Data trust score 0-100
        roi: Expected gross yield in percent
        readiness_status: Memo readiness (READY_FOR_MEMO, NEEDS_VERIFICATION, ...)
        source_type: official or portal
    """
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    area: Optional[str] = None
    type: Optional[str] = None
    price: Optional[float] = None
    size: Optional[float] = None
    bedrooms: Optional[int] = None
    status: Optional[str] = None
    trust_score: Optional[float] = Field(None, description="Trust score 0-100")
    roi: Optional[float] = Field(None, description="Gross yield in percent")
    readiness_status: Optional[str] = None
    source_type: Optional[str] = None

    @field_validator("price", "size", "trust_score", "roi", mode="before")
    @classmethod
    def _clean_number(cls, value: Any) -> Optional[float]:
        return coerce_number(value)

    @field_validator("bedrooms", mode="before")
    @classmethod
    def _clean_bedrooms(cls, value: Any) -> Optional[int]:
        number = coerce_number(value)
        return int(number) if number is not None else None

    @classmethod
    def from_row(cls, row: Any) -> "ListingCandidate":
        """Build a candidate from a ``Listing`` ORM row."""
        return cls(
            id=str(row.id),
            title=row.title or "",
            area=row.area,
            type=row.type,
            price=row.price,
            size=row.size,
            bedrooms=row.bedrooms,
            status=row.status,
            trust_score=row.trust_score,
            roi=row.roi,
            readiness_status=row.readiness,
            source_type=row.source_type,
        )


class HoldingRecord(BaseModel):
    """Property owned by an investor, with the area resolved from its listing."""
    model_config = ConfigDict(frozen=True)

    id: str
    investor_id: str
    property_id: str
    area: Optional[str] = None
    purchase_price: Optional[float] = None
    purchase_date: Optional[date] = None
    current_value: Optional[float] = None
    monthly_rent: Optional[float] = None
    occupancy_rate: Optional[float] = Field(None, ge=0, le=1)
    annual_expenses: Optional[float] = None

    @field_validator("purchase_price", "current_value", "monthly_rent", "annual_expenses", mode="before")
    @classmethod
    def _clean_number(cls, value: Any) -> Optional[float]:
        return coerce_number(value)

    @classmethod
    def from_row(cls, row: Any, area: Optional[str] = None) -> "HoldingRecord":
        """Build a record from a ``Holding`` ORM row."""
        occupancy = coerce_number(row.occupancy_rate)
        if occupancy is not None:
            occupancy = min(max(occupancy, 0.0), 1.0)
        return cls(
            id=str(row.id),
            investor_id=str(row.investor_id),
            property_id=str(row.listing_id),
            area=area,
            purchase_price=row.purchase_price,
            purchase_date=row.purchase_date,
            current_value=row.current_value,
            monthly_rent=row.monthly_rent,
            occupancy_rate=occupancy,
            annual_expenses=row.annual_expenses,
        )


class TrustPolicy(BaseModel):
    """Minimum data quality a candidate needs before it can be recommended."""

    min_trust_score: float = Field(70.0, ge=0, le=100)
    require_verification: bool = False
