"""Supervision of a single transfer job from submission to completion."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from kubexfer.core.config import Settings, get_settings
from kubexfer.core.telemetry import flush_telemetry, get_tracer, setup_telemetry
from kubexfer.models.k8s import JobOutcome, PodPhase
from kubexfer.services.errors import JobFailedError
from kubexfer.services.k8s_pods import (
    K8sClusterClient,
    PodLifecycleWaiter,
    PodLogTail,
    get_cluster_client,
)
from kubexfer.services.reporter import CompletionSignal, ProgressSink, create_reporter

if TYPE_CHECKING:
    from kubernetes.client import V1Job

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class JobSupervisor:
    """Runs a transfer job to completion while reporting its progress.

    The caller's thread submits the job and walks the pod through its
    lifecycle. Once the pod is scheduled, a reporter thread follows the pod's
    log; it is told the outcome through a one-shot signal and joined before
    ``run`` returns or raises.

    Example:
        ```python
        supervisor = JobSupervisor()
        outcome = supervisor.run(job)
        print(f"{outcome.job} finished in {outcome.duration_seconds:.0f}s")
        ```
    """

    def __init__(
        self,
        cluster: K8sClusterClient | None = None,
        settings: Settings | None = None,
        sink_factory: Callable[[], ProgressSink] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.cluster = cluster or get_cluster_client()
        self.waiter = PodLifecycleWaiter(self.cluster, self.settings, sleep=sleep)
        self.sink_factory = sink_factory

    def run(self, job: V1Job) -> JobOutcome:
        """Submit a job and wait for it to finish.

        Args:
            job: Job specification to submit

        Returns:
            JobOutcome of the successfully completed job

        Raises:
            SubmissionError: If the cluster rejects the job
            TransportError: If a cluster API call fails
            PodWaitTimeoutError: If a lifecycle phase exceeds its timeout
            JobFailedError: If the job's pod terminated without succeeding
        """
        with tracer.start_as_current_span("kubexfer.supervise_job") as span:
            handle = self.cluster.create_job(job)
            span.set_attribute("k8s.namespace.name", handle.namespace)
            span.set_attribute("k8s.job.name", handle.name)
            started_at = datetime.now(UTC)

            pod = self.waiter.wait_for_pod_created(handle)
            span.set_attribute("k8s.pod.name", pod.name)
            self.waiter.wait_for_pod_scheduled(pod)

            signal = CompletionSignal()
            reporter = create_reporter(
                PodLogTail(self.cluster, pod),
                signal,
                settings=self.settings,
                sink_factory=self.sink_factory,
            )
            reporter_thread = reporter.start()

            phase: PodPhase | None = None
            try:
                phase = self.waiter.wait_for_pod_terminal(pod)
            finally:
                signal.send(phase == PodPhase.SUCCEEDED)
                reporter_thread.join()

            if phase != PodPhase.SUCCEEDED:
                logger.error("Job %s failed with pod phase %s", handle, phase.value)
                raise JobFailedError(handle)

            finished_at = datetime.now(UTC)
            logger.info("Job %s completed", handle)
            return JobOutcome(
                job=handle,
                pod=pod,
                phase=phase,
                started_at=started_at,
                finished_at=finished_at,
            )


def supervise_job(job: V1Job, settings: Settings | None = None) -> JobOutcome:
    """Run a transfer job to completion with the default cluster client.

    Tracing is set up from the settings before the run and flushed after it.
    """
    settings = settings or get_settings()
    setup_telemetry(settings)
    try:
        return JobSupervisor(settings=settings).run(job)
    finally:
        flush_telemetry()
