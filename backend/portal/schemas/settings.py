"""
Pydantic schemas for public settings endpoints.
"""
from pydantic import Field

from portal.schemas.common import CamelModel


class PassingPercentageResponse(CamelModel):
    passing_percentage: float = Field(
        ..., ge=0.0, le=100.0, description="Minimum assessment percentage to pass"
    )
