"""Kubernetes-related models for supervised transfer jobs."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PodPhase(str, Enum):
    """Lifecycle phase reported in a pod's status."""

    PENDING = "Pending"  # Accepted, containers not yet running
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"  # Node lost contact with the control plane

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition can happen from this phase."""
        return self in (PodPhase.SUCCEEDED, PodPhase.FAILED)


class JobHandle(BaseModel):
    """Identity of a submitted Kubernetes Job."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class PodRef(BaseModel):
    """Identity of the pod spawned by a job."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class ProgressSnapshot(BaseModel):
    """Point-in-time estimate of transfer progress.

    Attributes:
        percentage: Completion percentage as reported by the transfer
        transferred: Bytes transferred so far
        total: Estimated total bytes; never below ``transferred``
    """

    model_config = ConfigDict(frozen=True)

    percentage: int = Field(ge=0, le=100)
    transferred: int = Field(ge=0)
    total: int = Field(ge=0)

    @model_validator(mode="before")
    @classmethod
    def _raise_total_to_transferred(cls, data: object) -> object:
        # transferred is exact, total may be a rounded estimate
        if isinstance(data, dict):
            transferred = data.get("transferred")
            total = data.get("total")
            if isinstance(transferred, int) and isinstance(total, int) and total < transferred:
                data = {**data, "total": transferred}
        return data

    @property
    def is_complete(self) -> bool:
        return self.percentage == 100


class JobOutcome(BaseModel):
    """Result of a job that ran to successful completion."""

    job: JobHandle
    pod: PodRef
    phase: PodPhase
    started_at: datetime
    finished_at: datetime

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()
