"""Service layer for job supervision and progress reporting."""

from kubexfer.services.errors import (
    JobFailedError,
    PodWaitTimeoutError,
    SubmissionError,
    TransferError,
    TransportError,
)
from kubexfer.services.k8s_pods import (
    K8sClusterClient,
    PodLifecycleWaiter,
    PodLogTail,
    get_cluster_client,
    reset_cluster_client,
)
from kubexfer.services.progress import ParseError, latest_progress, parse_log_line
from kubexfer.services.reporter import (
    CompletionSignal,
    PlainLogReporter,
    ProgressBarReporter,
    ProgressReporter,
    ProgressSink,
    RichProgressSink,
    create_reporter,
)
from kubexfer.services.supervisor import JobSupervisor, supervise_job

__all__ = [
    # Errors
    "TransferError",
    "SubmissionError",
    "TransportError",
    "PodWaitTimeoutError",
    "JobFailedError",
    "ParseError",
    # Cluster access
    "K8sClusterClient",
    "PodLifecycleWaiter",
    "PodLogTail",
    "get_cluster_client",
    "reset_cluster_client",
    # Progress parsing
    "parse_log_line",
    "latest_progress",
    # Reporting
    "CompletionSignal",
    "ProgressReporter",
    "PlainLogReporter",
    "ProgressBarReporter",
    "ProgressSink",
    "RichProgressSink",
    "create_reporter",
    # Supervision
    "JobSupervisor",
    "supervise_job",
]
