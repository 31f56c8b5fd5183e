"""Shared fixtures for kubexfer tests."""

from unittest.mock import MagicMock

import pytest
from kubernetes.client import (
    V1Job,
    V1ObjectMeta,
    V1Pod,
    V1PodCondition,
    V1PodList,
    V1PodStatus,
)

from kubexfer.core.config import Settings
from kubexfer.models.k8s import JobHandle, PodRef
from kubexfer.services.k8s_pods import K8sClusterClient

NAMESPACE = "transfers"
JOB_NAME = "pv-migrate-abc123"
POD_NAME = "pv-migrate-abc123-x7k2p"


class FakeClock:
    """Monotonic clock advanced only by the injected sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def job_handle():
    """Handle of the job created from the ``job`` fixture."""
    return JobHandle(namespace=NAMESPACE, name=JOB_NAME)


@pytest.fixture
def pod_ref():
    """Reference to the pod the job controller spawns for ``job_handle``."""
    return PodRef(namespace=NAMESPACE, name=POD_NAME)


@pytest.fixture
def make_pod():
    """Factory building pods as returned by the Kubernetes API."""

    def factory(
        phase: str | None = "Pending",
        scheduled: bool = True,
        name: str = POD_NAME,
    ) -> V1Pod:
        conditions = [V1PodCondition(type="PodScheduled", status="True" if scheduled else "False")]
        return V1Pod(
            metadata=V1ObjectMeta(name=name, namespace=NAMESPACE, labels={"job-name": JOB_NAME}),
            status=V1PodStatus(phase=phase, conditions=conditions),
        )

    return factory


@pytest.fixture
def make_pod_list():
    """Factory wrapping pods in a list response."""

    def factory(*pods: V1Pod) -> V1PodList:
        return V1PodList(items=list(pods))

    return factory


@pytest.fixture
def repeat_last():
    """Factory for side effects returning each value in turn, then the last one forever."""

    def factory(*values):
        remaining = list(values)

        def side_effect(*args, **kwargs):
            value = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            if isinstance(value, Exception):
                raise value
            return value

        return side_effect

    return factory


@pytest.fixture
def settings():
    """Create settings with fast polling for tests."""
    return Settings(
        display="plain",
        poll_interval_seconds=2.0,
        pod_create_timeout_seconds=300.0,
        pod_schedule_timeout_seconds=None,
        pod_completion_timeout_seconds=None,
        log_poll_interval_seconds=0.01,
    )


@pytest.fixture
def mock_batch_api():
    """Create a mock BatchV1Api."""
    return MagicMock()


@pytest.fixture
def mock_core_api():
    """Create a mock CoreV1Api."""
    core_api = MagicMock()
    core_api.read_namespaced_pod_log.return_value = ""
    return core_api


@pytest.fixture
def cluster(mock_batch_api, mock_core_api):
    """Create a K8sClusterClient with mocked APIs."""
    return K8sClusterClient(batch_api=mock_batch_api, core_api=mock_core_api)


@pytest.fixture
def job():
    """Create a minimal transfer job specification."""
    return V1Job(
        api_version="batch/v1",
        kind="Job",
        metadata=V1ObjectMeta(name=JOB_NAME, namespace=NAMESPACE),
    )


@pytest.fixture
def fake_clock():
    return FakeClock()
