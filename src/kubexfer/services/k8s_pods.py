"""Kubernetes access for transfer jobs: submission, pod lifecycle, and logs."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TypeVar

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from kubexfer.core.config import Settings, get_settings
from kubexfer.models.k8s import JobHandle, PodPhase, PodRef
from kubexfer.services.errors import PodWaitTimeoutError, SubmissionError, TransportError

if TYPE_CHECKING:
    from kubernetes.client import BatchV1Api, CoreV1Api, V1Job, V1Pod

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Label the job controller puts on every pod it spawns
JOB_NAME_LABEL = "job-name"

# Extra seconds requested on top of the log cursor age, absorbs clock skew
LOG_WINDOW_SLACK_SECONDS = 5

# Log line timestamp as (second-precision datetime, nanoseconds)
LogTimestamp = tuple[datetime, int]


def _is_rejection(e: ApiException) -> bool:
    """Whether the API server refused the request itself.

    4xx responses other than 429 (throttling) are rejections; 5xx, 429, and
    responses without a status are transport failures worth retrying.
    """
    status = e.status or 0
    return 400 <= status < 500 and status != 429


class K8sClusterClient:
    """Thin wrapper over the Kubernetes API used by the supervisor.

    Every call translates client exceptions into ``SubmissionError`` or
    ``TransportError`` with the namespace and name of the affected object.
    """

    def __init__(
        self,
        batch_api: BatchV1Api | None = None,
        core_api: CoreV1Api | None = None,
    ) -> None:
        """Initialize the client; APIs are loaded lazily unless injected."""
        self._batch_api = batch_api
        self._core_api = core_api
        self._initialized = batch_api is not None and core_api is not None

    def _ensure_initialized(self) -> None:
        """Initialize Kubernetes clients if not already done."""
        if self._initialized:
            return

        try:
            # Try in-cluster config first (when running in K8s)
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration")
        except config.ConfigException:
            # Fall back to kubeconfig (for local development)
            try:
                config.load_kube_config()
                logger.info("Loaded kubeconfig Kubernetes configuration")
            except config.ConfigException as e:
                logger.warning("Failed to load Kubernetes configuration: %s", e)
                raise RuntimeError("No Kubernetes configuration available") from e

        if self._batch_api is None:
            self._batch_api = client.BatchV1Api()
        if self._core_api is None:
            self._core_api = client.CoreV1Api()
        self._initialized = True

    @property
    def batch_api(self) -> BatchV1Api:
        """Get the BatchV1 API client."""
        self._ensure_initialized()
        assert self._batch_api is not None
        return self._batch_api

    @property
    def core_api(self) -> CoreV1Api:
        """Get the CoreV1 API client."""
        self._ensure_initialized()
        assert self._core_api is not None
        return self._core_api

    def create_job(self, job: V1Job) -> JobHandle:
        """Submit a job to the cluster.

        Args:
            job: Fully built job specification

        Returns:
            Handle identifying the created job

        Raises:
            SubmissionError: If the API server rejects the job
            TransportError: If the API server cannot be reached, is throttling,
                or fails with a server error
        """
        namespace = job.metadata.namespace or "default"
        name = job.metadata.name

        try:
            self.batch_api.create_namespaced_job(namespace=namespace, body=job)
        except ApiException as e:
            logger.error("Failed to create job %s/%s: %s", namespace, name, e)
            if _is_rejection(e):
                raise SubmissionError(f"Failed to create job {namespace}/{name}: {e.reason}") from e
            raise TransportError(f"Failed to create job: {e.reason}", namespace, name) from e
        except HTTPError as e:
            raise TransportError(f"Failed to create job: {e}", namespace, name) from e

        logger.info("Created job %s/%s", namespace, name)
        return JobHandle(namespace=namespace, name=name)

    def list_job_pods(self, job: JobHandle) -> list[V1Pod]:
        """List pods spawned by a job, in API listing order."""
        try:
            pods = self.core_api.list_namespaced_pod(
                namespace=job.namespace,
                label_selector=f"{JOB_NAME_LABEL}={job.name}",
            )
        except (ApiException, HTTPError) as e:
            raise TransportError(f"Failed to list pods of job: {e}", job.namespace, job.name) from e
        return list(pods.items or [])

    def read_pod(self, pod: PodRef) -> V1Pod:
        """Read the current state of a pod."""
        try:
            return self.core_api.read_namespaced_pod(name=pod.name, namespace=pod.namespace)
        except (ApiException, HTTPError) as e:
            raise TransportError(f"Failed to read pod: {e}", pod.namespace, pod.name) from e

    def read_pod_logs(self, pod: PodRef, since_seconds: int | None = None) -> str:
        """Read a pod's log with RFC 3339 timestamps prefixed to every line.

        Args:
            pod: Pod to read from
            since_seconds: Only return lines newer than this many seconds

        Returns:
            Raw log text
        """
        try:
            return self.core_api.read_namespaced_pod_log(
                name=pod.name,
                namespace=pod.namespace,
                timestamps=True,
                since_seconds=since_seconds,
            )
        except (ApiException, HTTPError) as e:
            raise TransportError(f"Failed to read pod logs: {e}", pod.namespace, pod.name) from e


def parse_log_timestamp(stamp: str) -> LogTimestamp:
    """Parse an RFC 3339 UTC timestamp with up to nanosecond precision.

    Raises:
        ValueError: If the value is not such a timestamp
    """
    if not stamp.endswith("Z"):
        raise ValueError(f"Not a UTC timestamp: {stamp!r}")
    base, _, fraction = stamp[:-1].partition(".")
    moment = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=UTC)
    if fraction and not fraction.isdigit():
        raise ValueError(f"Invalid fractional seconds: {stamp!r}")
    nanos = int(fraction.ljust(9, "0")[:9]) if fraction else 0
    return moment, nanos


class PodLogTail:
    """Incremental reader over a pod's log.

    Keeps a cursor at the timestamp of the newest line returned so far and
    only returns lines past it. Lines are returned verbatim, except that
    carriage-return separated progress updates within one line are returned as
    separate lines.
    """

    def __init__(
        self,
        cluster: K8sClusterClient,
        pod: PodRef,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.cluster = cluster
        self.pod = pod
        self._now = now or (lambda: datetime.now(UTC))
        self._cursor: LogTimestamp | None = None

    @property
    def cursor(self) -> LogTimestamp | None:
        return self._cursor

    def probe(self) -> None:
        """Check that the pod's log can be read at all."""
        self.cluster.read_pod_logs(self.pod)

    def read_new(self) -> list[str]:
        """Fetch lines logged since the previous call, oldest first."""
        since_seconds = None
        if self._cursor is not None:
            age = (self._now() - self._cursor[0]).total_seconds()
            since_seconds = max(1, math.ceil(age)) + LOG_WINDOW_SLACK_SECONDS

        raw = self.cluster.read_pod_logs(self.pod, since_seconds=since_seconds)

        lines: list[str] = []
        newest = self._cursor
        for record in raw.split("\n"):
            if not record:
                continue
            stamp, _, text = record.partition(" ")
            try:
                timestamp = parse_log_timestamp(stamp)
            except ValueError:
                # Keep lines we cannot place in time
                timestamp, text = None, record

            if timestamp is not None:
                if self._cursor is not None and timestamp <= self._cursor:
                    continue
                if newest is None or timestamp > newest:
                    newest = timestamp

            if "\r" in text:
                # Empty segments are artifacts of rsync redrawing its progress line
                lines.extend(part for part in text.split("\r") if part)
            else:
                lines.append(text)

        self._cursor = newest
        return lines


def _pod_phase(pod: V1Pod) -> PodPhase:
    phase = pod.status.phase if pod.status else None
    if phase is None:
        return PodPhase.PENDING
    try:
        return PodPhase(phase)
    except ValueError:
        return PodPhase.UNKNOWN


def _is_scheduled(pod: V1Pod) -> bool:
    conditions = (pod.status.conditions if pod.status else None) or []
    return any(c.type == "PodScheduled" and c.status == "True" for c in conditions)


class PodLifecycleWaiter:
    """Waits for a job's pod to move through created, scheduled, and terminal.

    Each phase checks once immediately and then on a fixed interval until its
    condition holds or its deadline passes. A deadline of None waits forever.
    """

    def __init__(
        self,
        cluster: K8sClusterClient,
        settings: Settings | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cluster = cluster
        self.settings = settings or get_settings()
        self._sleep = sleep
        self._clock = clock

    def _poll_immediate(
        self,
        condition: Callable[[], T | None],
        timeout: float | None,
        description: str,
    ) -> T:
        deadline = None if timeout is None else self._clock() + timeout
        while True:
            result = condition()
            if result is not None:
                return result
            if deadline is not None and self._clock() >= deadline:
                raise PodWaitTimeoutError(f"Timed out after {timeout}s waiting for {description}")
            self._sleep(self.settings.poll_interval_seconds)

    def wait_for_pod_created(self, job: JobHandle) -> PodRef:
        """Wait until the job has spawned a pod.

        If several pods match, the first one listed is used.

        Raises:
            PodWaitTimeoutError: If no pod appears within the creation timeout
            TransportError: If listing pods fails
        """

        def find_pod() -> PodRef | None:
            pods = self.cluster.list_job_pods(job)
            if not pods:
                return None
            if len(pods) > 1:
                logger.warning(
                    "Job %s has %d pods, tracking the first listed: %s",
                    job,
                    len(pods),
                    pods[0].metadata.name,
                )
            metadata = pods[0].metadata
            return PodRef(namespace=metadata.namespace or job.namespace, name=metadata.name)

        pod = self._poll_immediate(
            find_pod,
            self.settings.pod_create_timeout_seconds,
            f"a pod of job {job}",
        )
        logger.info("Pod %s created for job %s", pod, job)
        return pod

    def wait_for_pod_scheduled(self, pod: PodRef) -> None:
        """Wait until the pod has been assigned to a node.

        Raises:
            PodWaitTimeoutError: If the schedule timeout is set and passes
            TransportError: If reading the pod fails
        """
        self._poll_immediate(
            lambda: True if _is_scheduled(self.cluster.read_pod(pod)) else None,
            self.settings.pod_schedule_timeout_seconds,
            f"pod {pod} to be scheduled",
        )
        logger.info("Pod %s scheduled", pod)

    def wait_for_pod_terminal(self, pod: PodRef) -> PodPhase:
        """Wait until the pod has succeeded or failed.

        Returns:
            The terminal phase

        Raises:
            PodWaitTimeoutError: If the completion timeout is set and passes
            TransportError: If reading the pod fails
        """

        def terminal_phase() -> PodPhase | None:
            phase = _pod_phase(self.cluster.read_pod(pod))
            return phase if phase.is_terminal else None

        phase = self._poll_immediate(
            terminal_phase,
            self.settings.pod_completion_timeout_seconds,
            f"pod {pod} to finish",
        )
        logger.info("Pod %s finished with phase %s", pod, phase.value)
        return phase


# Global singleton instance
_cluster_client: K8sClusterClient | None = None


def get_cluster_client() -> K8sClusterClient:
    """Get the global K8sClusterClient instance."""
    global _cluster_client
    if _cluster_client is None:
        _cluster_client = K8sClusterClient()
    return _cluster_client


def reset_cluster_client() -> None:
    """Reset the global client instance (for testing)."""
    global _cluster_client
    _cluster_client = None
