from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal

from pydantic import BaseModel, Field


class ConfigDomain(str, Enum):
    PIPELINE = "pipeline"
    INSTANCE = "instance"

    @property
    def dir_name(self) -> str:
        """Subdirectory of the config root that holds this domain."""
        return f"{self.value}_config"


class ChangeSet(BaseModel):
    """Files that changed in one source during one reconciliation cycle."""

    domain: ConfigDomain
    source: str
    new: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def is_empty(self) -> bool:
        return not (self.new or self.modified or self.deleted)


class WatcherSettings(BaseModel):
    interval_seconds: float = Field(default=3.0, gt=0)
    fingerprint: Literal["stat", "hash"] = Field(default="stat")
    patterns: List[str] = Field(default_factory=list)
    ignore_patterns: List[str] = Field(
        default_factory=lambda: [".*", "*.swp", "*~"]
    )
    use_notifications: bool = Field(default=False)
