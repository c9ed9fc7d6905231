# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Prober Pod manifests and lifecycle: launch, await running, teardown."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from conncheck import console, logger
from conncheck.config import RunConfig
from conncheck.constants import (
    DOWNWARD_API_FIELDS,
    PHASE_FAILED,
    PROBER_CONTAINER_NAME,
    PROBER_RESTART_POLICY,
    STARTED_PHASES,
)
from conncheck.errors import ControlPlaneError, LaunchError, ReadinessTimeout, SchedulingError
from conncheck.kubectl import ControlPlane
from conncheck.models import Inventory, LifecycleState, PodStatus, ProberInstance, RunVariant
from conncheck.readiness import poll_until


# ============================================================================
# Manifest
# ============================================================================

def prober_manifest(variant: RunVariant, inventory: Inventory, run_cfg: RunConfig) -> dict:
    """Build the Pod manifest of a variant's prober.

    The inventory is passed as opaque JSON in the ``PODS`` and ``NODES``
    environment variables; the Pod's own identity is injected by the kubelet.

    Args:
        variant: Variant to build the prober for.
        inventory: Targets the prober tests.
        run_cfg: Run configuration with the prober image.

    Returns:
        Kubernetes Pod resource as a dictionary ready for YAML serialization.
    """
    env = [{"name": name, "value": value} for name, value in inventory.to_env().items()]
    env.extend(
        {"name": name, "valueFrom": {"fieldRef": {"fieldPath": field_path}}}
        for name, field_path in DOWNWARD_API_FIELDS.items()
    )
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": variant.prober_name,
            "labels": {"app": "conncheck-prober", "conncheck/variant": variant.id.value},
        },
        "spec": {
            "restartPolicy": PROBER_RESTART_POLICY,
            "hostNetwork": variant.host_network,
            "containers": [
                {
                    "name": PROBER_CONTAINER_NAME,
                    "image": run_cfg.prober_image,
                    "imagePullPolicy": run_cfg.image_pull_policy,
                    "env": env,
                }
            ],
        },
    }


# ============================================================================
# Lifecycle
# ============================================================================

def launch(
    control_plane: ControlPlane,
    variant: RunVariant,
    inventory: Inventory,
    run_cfg: RunConfig,
) -> ProberInstance:
    """Submit the prober Pod of a variant.

    Returns:
        Handle of the prober in state ``Requested``.

    Raises:
        LaunchError: If the API server rejects the Pod.
    """
    console.print(f"[yellow]\u2139\ufe0f  Creating Pod '{variant.prober_name}' in {variant.display_name}...[/yellow]")
    try:
        ref = control_plane.create_object(prober_manifest(variant, inventory, run_cfg))
    except ControlPlaneError as err:
        raise LaunchError(f"Failed to create Pod '{variant.prober_name}'", {"reason": err.stderr.strip() or err.message}) from err
    return ProberInstance(variant=variant, ref=ref)


def _prober_status(control_plane: ControlPlane, instance: ProberInstance) -> PodStatus:
    status = control_plane.get_object_status(instance.ref)
    if status is None:
        raise SchedulingError(f"Pod '{instance.name}' disappeared before running")
    if status.phase == PHASE_FAILED:
        raise SchedulingError(f"Pod '{instance.name}' failed before its results could be read")
    if status.node and instance.state is LifecycleState.REQUESTED:
        instance.state = LifecycleState.SCHEDULED
        logger.info("Pod '%s' scheduled on node '%s'", instance.name, status.node)
    return status


def await_running(
    control_plane: ControlPlane,
    instance: ProberInstance,
    *,
    poll_interval: float,
    timeout: float,
    cancel: threading.Event | None = None,
) -> ProberInstance:
    """Wait for the prober Pod to run and resolve its runtime identity.

    Args:
        control_plane: Control plane to query.
        instance: Launched prober.
        poll_interval: Seconds between status queries.
        timeout: Maximum seconds to wait.
        cancel: Cancellation token, or None.

    Returns:
        The same instance in state ``Running`` with its addresses filled in.

    Raises:
        SchedulingError: If the Pod disappears, fails, or times out first. A Pod
            that already succeeded counts as started; its logs stay readable.
        Cancelled: If *cancel* is set while waiting.
    """
    try:
        status = poll_until(
            lambda: _prober_status(control_plane, instance),
            lambda s: s.phase in STARTED_PHASES and bool(s.ip and s.node and s.host_ip),
            poll_interval=poll_interval,
            timeout=timeout,
            description=f"Pod '{instance.name}' to run",
            cancel=cancel,
        )
    except ReadinessTimeout as err:
        raise SchedulingError(str(err)) from err

    instance.ip = status.ip
    instance.host_node = status.node
    instance.host_node_ip = status.host_ip
    instance.state = LifecycleState.RUNNING
    console.print(
        f"[green]\u2705 Running checks on Pod '{instance.name}' {instance.ip} "
        f"(running on node '{instance.host_node}' {instance.host_node_ip})[/green]"
    )
    return instance


def teardown(control_plane: ControlPlane, instance: ProberInstance) -> None:
    """Request deletion of the prober Pod without waiting for it to be gone.

    Failures are logged and never raised.
    """
    console.print(f"[yellow]\u2139\ufe0f  Deleting Pod '{instance.name}'[/yellow]")
    try:
        control_plane.delete_object(instance.ref, wait=False)
    except ControlPlaneError as err:
        console.print(f"[yellow]\u26a0\ufe0f  Failed to delete Pod '{instance.name}': {err}[/yellow]")
        logger.warning("Teardown of %s failed: %s", instance.name, err)
    instance.state = LifecycleState.TEARDOWN_REQUESTED


@contextmanager
def launched_prober(
    control_plane: ControlPlane,
    variant: RunVariant,
    inventory: Inventory,
    run_cfg: RunConfig,
) -> Iterator[ProberInstance]:
    """Launch a variant's prober and tear it down on every exit path.

    Raises:
        LaunchError: If the Pod is rejected; nothing is torn down then.
    """
    instance = launch(control_plane, variant, inventory, run_cfg)
    try:
        yield instance
    finally:
        teardown(control_plane, instance)
