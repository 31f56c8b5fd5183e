"""Pydantic models for jobs, pods, and transfer progress."""

from kubexfer.models.k8s import (
    JobHandle,
    JobOutcome,
    PodPhase,
    PodRef,
    ProgressSnapshot,
)

__all__ = [
    "JobHandle",
    "JobOutcome",
    "PodPhase",
    "PodRef",
    "ProgressSnapshot",
]
