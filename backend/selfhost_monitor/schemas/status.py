"""Status overview schemas for dashboard."""
from typing import List, Optional
from pydantic import BaseModel


class TargetSummary(BaseModel):
    """Summary of a monitored URL for the dashboard."""
    id: int
    label: str
    service_name: Optional[str] = None
    status: str  # up, down, unknown
    uptime_24h: float  # Percentage of saved checks that were up
    last_check: Optional[str] = None


class StatusOverview(BaseModel):
    """Dashboard overview data."""
    total_targets: int
    targets_up: int
    targets_down: int
    targets_unknown: int
    overall_uptime_24h: float
    targets: List[TargetSummary]
