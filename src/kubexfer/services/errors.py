"""Exceptions raised while supervising a transfer job."""

from kubexfer.models.k8s import JobHandle


class TransferError(Exception):
    """Base class for all supervision errors."""


class SubmissionError(TransferError):
    """Raised when the cluster rejects a job."""


class TransportError(TransferError):
    """Raised when a cluster API call fails."""

    def __init__(self, message: str, namespace: str, name: str) -> None:
        super().__init__(f"{message} ({namespace}/{name})")
        self.namespace = namespace
        self.name = name


class PodWaitTimeoutError(TransferError, TimeoutError):
    """Raised when a lifecycle phase does not complete before its deadline."""


class JobFailedError(TransferError):
    """Raised when the job's pod terminated without succeeding."""

    def __init__(self, job: JobHandle) -> None:
        super().__init__(f"job {job.name} failed")
        self.job = job
