"""Data models for a checking session."""

import math
from enum import Enum
from typing import List

from pydantic import BaseModel, Field, model_validator


class Classification(str, Enum):
    """Outcome class of a single remote lookup attempt"""

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"

    @property
    def retryable(self) -> bool:
        return self in (Classification.RATE_LIMITED, Classification.TRANSIENT_FAILURE)


class RetryAttempt(BaseModel):
    """One attempt made while looking up a single identifier"""

    attempt_number: int = Field(..., ge=1)
    classification: Classification
    backoff_seconds: float = 0.0


class ItemResult(BaseModel):
    """Result for one processed identifier.

    ``value`` holds the looked-up date, the "No posts found" sentinel, or an
    "Error: ..." message; ``failed`` is true exactly for the message form.
    """

    identifier: str = Field(..., min_length=1)
    value: str
    failed: bool = False


class Session(BaseModel):
    """Durable state of one resumable run"""

    cursor: int = Field(0, ge=0)
    total: int = Field(..., ge=0)
    results: List[ItemResult] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_cursor(self) -> "Session":
        if self.cursor > self.total:
            raise ValueError(
                f"cursor ({self.cursor}) cannot exceed total ({self.total})"
            )
        if len(self.results) != self.cursor:
            raise ValueError(
                f"results length ({len(self.results)}) must equal cursor "
                f"({self.cursor})"
            )
        return self

    def record(self, result: ItemResult) -> None:
        """Append the next result and advance the cursor together"""
        if self.cursor >= self.total:
            raise ValueError("Session is already complete")
        self.results.append(result)
        self.cursor += 1

    @property
    def remaining(self) -> int:
        return self.total - self.cursor

    @property
    def is_complete(self) -> bool:
        return self.cursor == self.total

    @property
    def progress_fraction(self) -> float:
        if self.total == 0:
            return 1.0
        return self.cursor / self.total

    @property
    def percentage(self) -> int:
        """Whole-number percentage, rounding halves up"""
        if self.total == 0:
            return 100
        return math.floor(self.cursor * 100 / self.total + 0.5)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.failed)
