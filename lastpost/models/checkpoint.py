"""Data models for the persisted checkpoint layout."""

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from lastpost.models.session import ItemResult, Session


class CheckpointProgress(BaseModel):
    """Progress block of a checkpoint"""

    model_config = ConfigDict(populate_by_name=True)

    current: int = Field(
        0, ge=0, validation_alias=AliasChoices("current", "cursor")
    )
    total: int = Field(..., ge=0)
    percentage: int = Field(0, ge=0, le=100)
    estimated_time: str = Field(
        "",
        serialization_alias="estimatedTime",
        validation_alias=AliasChoices("estimatedTime", "estimated_time"),
    )


class CheckpointRecord(BaseModel):
    """One stored result, in the export-friendly field naming"""

    username: str
    post_date: str
    error: bool = False

    @classmethod
    def from_result(cls, result: ItemResult) -> "CheckpointRecord":
        return cls(
            username=result.identifier, post_date=result.value, error=result.failed
        )

    def to_result(self) -> ItemResult:
        return ItemResult(identifier=self.username, value=self.post_date, failed=self.error)


class Checkpoint(BaseModel):
    """Checkpoint data for a session key"""

    model_config = ConfigDict(protected_namespaces=())

    progress: CheckpointProgress
    results: List[CheckpointRecord] = Field(default_factory=list)
    last_updated: Optional[datetime] = None

    @classmethod
    def from_session(
        cls, session: Session, estimated_time: str = ""
    ) -> "Checkpoint":
        return cls(
            progress=CheckpointProgress(
                current=session.cursor,
                total=session.total,
                percentage=session.percentage,
                estimated_time=estimated_time,
            ),
            results=[CheckpointRecord.from_result(r) for r in session.results],
            last_updated=datetime.now(),
        )

    def same_snapshot(self, other: "Checkpoint") -> bool:
        """Equal progress and results, ignoring when each was written"""
        return self.progress == other.progress and self.results == other.results

    def to_session(self) -> Session:
        """Rehydrate a Session; raises ValueError if the data is inconsistent"""
        return Session(
            cursor=self.progress.current,
            total=self.progress.total,
            results=[r.to_result() for r in self.results],
        )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
