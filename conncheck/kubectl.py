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

"""Control-plane access through kubectl.

The orchestration code depends only on the :class:`ControlPlane` protocol.
:class:`KubectlControlPlane` implements it by shelling out to ``kubectl`` with
the connection flags of an explicit :class:`KubeSession`.
"""

from __future__ import annotations

import json
import subprocess
import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import yaml

from conncheck import logger
from conncheck.config import SessionConfig
from conncheck.constants import (
    ADDRESS_TYPE_INTERNAL_IP,
    LOG_STREAM_CANCEL_CHECK_SECONDS,
    LOG_STREAM_TERMINATE_GRACE_SECONDS,
    SERVICE_ACCOUNT_CA,
    SERVICE_ACCOUNT_TOKEN,
)
from conncheck.errors import ControlPlaneError
from conncheck.models import FleetStatus, ObjectRef, PodStatus
from conncheck.utils import read_kubeconfig_server, run_kubectl, spawn_kubectl


# ============================================================================
# Session
# ============================================================================

@dataclass(frozen=True)
class KubeSession:
    """Connection settings passed to every kubectl invocation.

    Attributes:
        server: API server URL, or None to use the kubeconfig.
        certificate_authority: CA bundle for the API server, or None.
        token_file: File holding the bearer token, re-read on every call, or None.
        context: kubeconfig context, or None.
        namespace: Namespace for namespaced objects, or None.
    """

    server: str | None = None
    certificate_authority: Path | None = None
    token_file: Path | None = None
    context: str | None = None
    namespace: str | None = None

    def flags(self) -> list[str]:
        """Build the kubectl connection flags for this session."""
        flags: list[str] = []
        if self.server:
            flags.extend(["--server", self.server])
        if self.certificate_authority:
            flags.extend(["--certificate-authority", str(self.certificate_authority)])
        if self.token_file:
            flags.extend(["--token", self.token_file.read_text().strip()])
        if self.context:
            flags.extend(["--context", self.context])
        if self.namespace:
            flags.extend(["--namespace", self.namespace])
        return flags


def resolve_session(session_cfg: SessionConfig) -> KubeSession:
    """Build a session from configuration.

    In-cluster mode uses the service-account CA and token and, unless a server
    is configured, discovers the API server from the kubelet kubeconfig.

    Args:
        session_cfg: API server connection settings.

    Returns:
        The resolved session.

    Raises:
        ControlPlaneError: If the API server cannot be discovered in-cluster.
    """
    if not session_cfg.in_cluster:
        return KubeSession(
            server=session_cfg.server,
            certificate_authority=session_cfg.certificate_authority,
            token_file=session_cfg.token_file,
            context=session_cfg.context,
            namespace=session_cfg.namespace,
        )

    server = session_cfg.server
    if server is None:
        try:
            server = read_kubeconfig_server(session_cfg.kubelet_config)
        except (OSError, ValueError) as err:
            raise ControlPlaneError(f"Cannot discover API server: {err}") from err
    return KubeSession(
        server=server,
        certificate_authority=session_cfg.certificate_authority or Path(SERVICE_ACCOUNT_CA),
        token_file=session_cfg.token_file or Path(SERVICE_ACCOUNT_TOKEN),
        namespace=session_cfg.namespace,
    )


# ============================================================================
# Control-plane protocol
# ============================================================================

class ControlPlane(Protocol):
    """Capabilities of the cluster control plane used by a run."""

    def get_fleet_status(self, name: str) -> FleetStatus: ...

    def list_pods(self, selector: str) -> list[dict[str, Any]]: ...

    def list_nodes(self, selector: str | None = None) -> list[dict[str, Any]]: ...

    def create_object(self, manifest: dict[str, Any]) -> ObjectRef: ...

    def get_object_status(self, ref: ObjectRef) -> PodStatus | None: ...

    def stream_logs(
        self, ref: ObjectRef, cancel: threading.Event | None = None
    ) -> AbstractContextManager[Iterator[str]]: ...

    def delete_object(self, ref: ObjectRef, wait: bool = False, ignore_not_found: bool = False) -> None: ...


# ============================================================================
# kubectl implementation
# ============================================================================

def _internal_ip(node: dict) -> str | None:
    for address in node.get("status", {}).get("addresses", []):
        if address.get("type") == ADDRESS_TYPE_INTERNAL_IP:
            return address.get("address")
    return None


class KubectlControlPlane:
    """Control plane backed by the kubectl CLI."""

    def __init__(self, session: KubeSession | None = None) -> None:
        self.session = session or KubeSession()

    def _args(self, *args: str) -> list[str]:
        return [*self.session.flags(), *args]

    def _run(self, *args: str, input: str | None = None) -> str:
        cmd = self._args(*args)
        ok, stdout, stderr = run_kubectl(cmd, input=input)
        if not ok:
            raise ControlPlaneError(f"kubectl {args[0]} failed", command=["kubectl", *args], stderr=stderr)
        return stdout

    def _get_json(self, *args: str) -> dict:
        stdout = self._run("get", *args, "--output", "json")
        try:
            return json.loads(stdout)
        except json.JSONDecodeError as err:
            raise ControlPlaneError(f"kubectl get returned invalid JSON: {err}", command=["kubectl", "get", *args]) from err

    def get_fleet_status(self, name: str) -> FleetStatus:
        """Read the ready and desired Pod counts of a DaemonSet.

        Args:
            name: DaemonSet name.

        Returns:
            The DaemonSet's ready and desired counts.

        Raises:
            ControlPlaneError: If the DaemonSet cannot be read.
        """
        status = self._get_json("daemonset", name).get("status", {})
        return FleetStatus(
            ready=int(status.get("numberReady", 0)),
            desired=int(status.get("desiredNumberScheduled", 0)),
        )

    def list_pods(self, selector: str) -> list[dict[str, Any]]:
        """List Pods matching a label selector as ``{name, ip, node}`` records."""
        items = self._get_json("pods", "--selector", selector).get("items", [])
        return [
            {
                "name": item.get("metadata", {}).get("name"),
                "ip": item.get("status", {}).get("podIP"),
                "node": item.get("spec", {}).get("nodeName"),
            }
            for item in items
        ]

    def list_nodes(self, selector: str | None = None) -> list[dict[str, Any]]:
        """List nodes as ``{name, internal_ip}`` records.

        Args:
            selector: Label selector restricting the nodes, or None for all.

        Returns:
            One record per node; ``internal_ip`` is None for nodes without one.
        """
        args = ["nodes"]
        if selector:
            args.extend(["--selector", selector])
        items = self._get_json(*args).get("items", [])
        return [
            {"name": item.get("metadata", {}).get("name"), "internal_ip": _internal_ip(item)}
            for item in items
        ]

    def create_object(self, manifest: dict[str, Any]) -> ObjectRef:
        """Create an object from a manifest passed to ``kubectl create`` on stdin.

        Raises:
            ControlPlaneError: If the API server rejects the object.
        """
        self._run("create", "--filename", "-", input=yaml.safe_dump(manifest, default_flow_style=False))
        return ObjectRef(
            kind=manifest["kind"],
            name=manifest["metadata"]["name"],
            namespace=self.session.namespace,
        )

    def get_object_status(self, ref: ObjectRef) -> PodStatus | None:
        """Read the phase and addresses of a Pod.

        Returns:
            The Pod status, or None if the Pod does not exist.
        """
        cmd = self._args("get", ref.kind.lower(), ref.name, "--output", "json")
        ok, stdout, stderr = run_kubectl(cmd)
        if not ok:
            if "NotFound" in stderr:
                return None
            raise ControlPlaneError(f"kubectl get {ref.kind.lower()} failed",
                                    command=["kubectl", "get", ref.kind.lower(), ref.name], stderr=stderr)
        try:
            pod = json.loads(stdout)
        except json.JSONDecodeError as err:
            raise ControlPlaneError(f"kubectl get returned invalid JSON: {err}") from err
        status = pod.get("status", {})
        return PodStatus(
            phase=status.get("phase"),
            ip=status.get("podIP"),
            node=pod.get("spec", {}).get("nodeName"),
            host_ip=status.get("hostIP"),
        )

    @contextmanager
    def stream_logs(self, ref: ObjectRef, cancel: threading.Event | None = None) -> Iterator[Iterator[str]]:
        """Follow the logs of a Pod line by line.

        The ``kubectl logs -f`` process is terminated when the context exits or
        when *cancel* is set, which ends the line iterator.

        Args:
            ref: The Pod to follow.
            cancel: Cancellation token, or None.

        Yields:
            Iterator over log lines without trailing newlines.

        Raises:
            ControlPlaneError: If kubectl cannot be started or exits with an error.
        """
        cmd = self._args("logs", "--follow", ref.name)
        try:
            proc = spawn_kubectl(cmd)
        except OSError as err:
            raise ControlPlaneError(f"Cannot start kubectl logs: {err}", command=["kubectl", "logs", ref.name]) from err

        done = threading.Event()
        terminated = threading.Event()
        watcher = None
        if cancel is not None:
            watcher = threading.Thread(
                target=self._terminate_on_cancel,
                args=(proc, cancel, done, terminated),
                name=f"logs-{ref.name}",
                daemon=True,
            )
            watcher.start()
        try:
            yield self._lines(proc, ref, terminated)
        finally:
            done.set()
            if watcher is not None:
                watcher.join()
            terminated.set()
            _terminate(proc)

    @staticmethod
    def _lines(proc: subprocess.Popen, ref: ObjectRef, terminated: threading.Event) -> Iterator[str]:
        assert proc.stdout is not None
        for line in proc.stdout:
            yield line.rstrip("\r\n")
        returncode = proc.wait()
        if returncode != 0 and not terminated.is_set():
            stderr = proc.stderr.read() if proc.stderr else ""
            raise ControlPlaneError(
                f"kubectl logs exited with code {returncode}",
                command=["kubectl", "logs", "--follow", ref.name],
                stderr=stderr,
            )

    @staticmethod
    def _terminate_on_cancel(
        proc: subprocess.Popen,
        cancel: threading.Event,
        done: threading.Event,
        terminated: threading.Event,
    ) -> None:
        while not done.is_set():
            if cancel.wait(LOG_STREAM_CANCEL_CHECK_SECONDS):
                logger.debug("Cancellation requested, stopping log stream (pid %d)", proc.pid)
                terminated.set()
                proc.terminate()
                return

    def delete_object(self, ref: ObjectRef, wait: bool = False, ignore_not_found: bool = False) -> None:
        """Request deletion of an object.

        Args:
            ref: The object to delete.
            wait: Whether kubectl waits for the object to be gone.
            ignore_not_found: Whether a missing object counts as success.

        Raises:
            ControlPlaneError: If the deletion request is rejected.
        """
        args = ["delete", ref.kind.lower(), ref.name, f"--wait={str(wait).lower()}"]
        if ignore_not_found:
            args.append("--ignore-not-found")
        self._run(*args)


def _terminate(proc: subprocess.Popen) -> None:
    """Stop a child process, escalating to SIGKILL after a grace period."""
    if proc.poll() is None:
        proc.terminate()
        try:
            proc.wait(timeout=LOG_STREAM_TERMINATE_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
    for pipe in (proc.stdout, proc.stderr):
        if pipe is not None:
            pipe.close()
