from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict, Field

class SweepError(BaseModel):
    variant: str
    variant_id: str = Field(..., alias="variantId")
    errors: Any = None

    model_config = ConfigDict(populate_by_name=True)

class SweepSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    deleted_count: int = Field(0, alias="deletedCount")
    skipped_count: int = Field(0, alias="skippedCount")
    total_found: int = Field(0, alias="totalFound")
    errors: List[SweepError] = []
    timestamp: str

class LogsResponse(BaseModel):
    success: bool = True
    count: int
    logs: List[Dict[str, Any]]
