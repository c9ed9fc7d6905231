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

"""Shared fakes for the conncheck tests."""

from __future__ import annotations

import json
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import pytest

from conncheck.config import RunConfig
from conncheck.errors import ControlPlaneError
from conncheck.models import FleetStatus, InstanceIdentity, ObjectRef, PodStatus

POD_RECORDS = [
    {"name": "conncheck-target-a", "ip": "10.244.0.10", "node": "node-a"},
    {"name": "conncheck-target-b", "ip": "10.244.1.10", "node": "node-b"},
]
NODE_RECORDS = [
    {"name": "node-a", "internal_ip": "192.168.0.1"},
    {"name": "node-b", "internal_ip": "192.168.0.2"},
]


def result_line(test_id: str = "pod-self", target_ip: str = "10.244.0.10",
                target_name: str = "conncheck-target-a", success: bool = True) -> str:
    return json.dumps({
        "test_id": test_id,
        "target_ip": target_ip,
        "target_name": target_name,
        "success": success,
    })


def running_status(name: str) -> PodStatus:
    return PodStatus(phase="Running", ip=f"10.244.9.{len(name)}", node="node-a", host_ip="192.168.0.1")


class FakeControlPlane:
    """In-memory control plane recording every call.

    ``statuses`` maps a Pod name to the successive results of
    ``get_object_status``; the last one repeats. ``logs`` maps a Pod name to
    its log lines; an exception instance in the list is raised when reached.
    """

    def __init__(
        self,
        pods: list[dict] | None = None,
        nodes: list[dict] | None = None,
        fleet: list[FleetStatus | Exception] | None = None,
        statuses: dict[str, list[PodStatus | None]] | None = None,
        logs: dict[str, list[Any]] | None = None,
        create_errors: dict[str, ControlPlaneError] | None = None,
        delete_errors: dict[str, ControlPlaneError] | None = None,
    ) -> None:
        self.pods = POD_RECORDS if pods is None else pods
        self.nodes = NODE_RECORDS if nodes is None else nodes
        self.fleet = fleet or [FleetStatus(ready=2, desired=2)]
        self.statuses = statuses or {}
        self.logs = logs or {}
        self.create_errors = create_errors or {}
        self.delete_errors = delete_errors or {}
        self.created: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def _record(self, *call: Any) -> None:
        with self._lock:
            self.calls.append(call)

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def get_fleet_status(self, name: str) -> FleetStatus:
        self._record("get_fleet_status", name)
        status = self.fleet.pop(0) if len(self.fleet) > 1 else self.fleet[0]
        if isinstance(status, Exception):
            raise status
        return status

    def list_pods(self, selector: str) -> list[dict]:
        self._record("list_pods", selector)
        return list(self.pods)

    def list_nodes(self, selector: str | None = None) -> list[dict]:
        self._record("list_nodes", selector)
        return list(self.nodes)

    def create_object(self, manifest: dict) -> ObjectRef:
        name = manifest["metadata"]["name"]
        self._record("create", name)
        if name in self.create_errors:
            raise self.create_errors[name]
        self.created[name] = manifest
        return ObjectRef(kind=manifest["kind"], name=name)

    def get_object_status(self, ref: ObjectRef) -> PodStatus | None:
        self._record("get_status", ref.name)
        if ref.name not in self.created:
            return None
        script = self.statuses.get(ref.name)
        if not script:
            return running_status(ref.name)
        return script.pop(0) if len(script) > 1 else script[0]

    @contextmanager
    def stream_logs(self, ref: ObjectRef, cancel: threading.Event | None = None) -> Iterator[Iterator[str]]:
        self._record("stream_open", ref.name)

        def _lines() -> Iterator[str]:
            for line in self.logs.get(ref.name, []):
                if isinstance(line, Exception):
                    raise line
                yield line

        try:
            yield _lines()
        finally:
            self._record("stream_close", ref.name)

    def delete_object(self, ref: ObjectRef, wait: bool = False, ignore_not_found: bool = False) -> None:
        self._record("delete", ref.name, wait)
        if ref.name in self.delete_errors:
            raise self.delete_errors[ref.name]


class RecordingReporter:
    """Reporter that records every callback in order."""

    def __init__(self) -> None:
        self.events: list[tuple] = []
        self._lock = threading.Lock()

    def init(self, identity: InstanceIdentity) -> None:
        with self._lock:
            self.events.append(("init", identity))

    def on_result(self, item: Any) -> None:
        with self._lock:
            self.events.append(("result", item))

    def finalize(self) -> None:
        with self._lock:
            self.events.append(("finalize",))

    def named(self, name: str) -> list[tuple]:
        return [event for event in self.events if event[0] == name]


@pytest.fixture
def run_cfg() -> RunConfig:
    return RunConfig(poll_interval=0.001, fleet_timeout=1, running_timeout=1)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()
