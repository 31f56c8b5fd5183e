"""Supervise a Kubernetes data-transfer job and report its progress."""

from kubexfer.models.k8s import JobHandle, JobOutcome, PodPhase, PodRef, ProgressSnapshot
from kubexfer.services.errors import (
    JobFailedError,
    PodWaitTimeoutError,
    SubmissionError,
    TransferError,
    TransportError,
)
from kubexfer.services.progress import ParseError
from kubexfer.services.supervisor import JobSupervisor, supervise_job

__all__ = [
    "JobHandle",
    "JobOutcome",
    "PodPhase",
    "PodRef",
    "ProgressSnapshot",
    "TransferError",
    "SubmissionError",
    "TransportError",
    "PodWaitTimeoutError",
    "JobFailedError",
    "ParseError",
    "JobSupervisor",
    "supervise_job",
]
