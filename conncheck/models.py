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

"""Data models for targets, prober instances, test results, and run summaries.

Records exchanged with the prober workload (targets and test results) are
pydantic models so they validate and serialize to the JSON wire format.
Controller-side runtime state uses plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictBool, TypeAdapter

from conncheck.constants import ENV_NODES, ENV_PODS, EXIT_FAILURE, EXIT_OK


# ============================================================================
# Targets and inventory
# ============================================================================

class TargetPod(BaseModel):
    """A target Pod of the target DaemonSet."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    ip: str = Field(min_length=1)
    node: str = Field(min_length=1)


class TargetNode(BaseModel):
    """A cluster node addressed by its internal IP."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    ip: str = Field(min_length=1)


_PODS_ADAPTER = TypeAdapter(tuple[TargetPod, ...])
_NODES_ADAPTER = TypeAdapter(tuple[TargetNode, ...])


class Inventory(BaseModel):
    """Immutable snapshot of the targets shared by all variant runs."""

    model_config = ConfigDict(frozen=True)

    pods: tuple[TargetPod, ...] = ()
    nodes: tuple[TargetNode, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.pods

    def to_env(self) -> dict[str, str]:
        """Serialize the inventory into the prober's environment variables.

        Returns:
            Mapping of ``PODS`` and ``NODES`` to compact JSON arrays.
        """
        return {
            ENV_PODS: _PODS_ADAPTER.dump_json(self.pods).decode(),
            ENV_NODES: _NODES_ADAPTER.dump_json(self.nodes).decode(),
        }

    @classmethod
    def from_env(cls, env: dict[str, str]) -> Inventory:
        """Parse an inventory back from prober environment variables.

        Args:
            env: Mapping containing the ``PODS`` and ``NODES`` JSON arrays.

        Returns:
            The decoded inventory.
        """
        return cls(
            pods=_PODS_ADAPTER.validate_json(env[ENV_PODS]),
            nodes=_NODES_ADAPTER.validate_json(env[ENV_NODES]),
        )


# ============================================================================
# Variants and prober instances
# ============================================================================

class VariantId(str, Enum):
    """Network mode a prober runs in."""
    POD_NETWORK = "pod-network"
    HOST_NETWORK = "host-network"


@dataclass(frozen=True)
class RunVariant:
    """Compiled-in prober configuration for one network mode.

    Attributes:
        id: Variant identifier.
        display_name: Name of the network shown to the operator.
        host_network: Whether the prober Pod uses the node's network namespace.
        prober_name: Name of the prober Pod.
    """

    id: VariantId
    display_name: str
    host_network: bool
    prober_name: str


class LifecycleState(str, Enum):
    """Lifecycle of a prober instance as seen by the controller."""
    REQUESTED = "Requested"
    SCHEDULED = "Scheduled"
    RUNNING = "Running"
    STREAMING = "Streaming"
    COMPLETED = "Completed"
    TEARDOWN_REQUESTED = "TeardownRequested"


@dataclass(frozen=True)
class ObjectRef:
    """Handle to an object created in the cluster."""

    kind: str
    name: str
    namespace: str | None = None


@dataclass(frozen=True)
class FleetStatus:
    ready: int
    desired: int


@dataclass(frozen=True)
class PodStatus:
    phase: str | None
    ip: str | None = None
    node: str | None = None
    host_ip: str | None = None


@dataclass(frozen=True)
class InstanceIdentity:
    """Runtime identity of a running prober Pod.

    Attributes:
        name: Name of the prober Pod.
        ip: IP address of the prober Pod.
        node_name: Name of the node the Pod runs on.
        node_ip: IP address of that node.
    """

    name: str
    ip: str
    node_name: str
    node_ip: str


@dataclass
class ProberInstance:
    """Controller-owned state of one launched prober Pod."""

    variant: RunVariant
    ref: ObjectRef
    state: LifecycleState = LifecycleState.REQUESTED
    ip: str | None = None
    host_node: str | None = None
    host_node_ip: str | None = None

    @property
    def name(self) -> str:
        return self.ref.name

    @property
    def identity(self) -> InstanceIdentity:
        if self.ip is None or self.host_node is None or self.host_node_ip is None:
            raise ValueError(f"Prober '{self.name}' has no resolved identity (state {self.state.value})")
        return InstanceIdentity(self.name, self.ip, self.host_node, self.host_node_ip)


# ============================================================================
# Test results
# ============================================================================

class TestId(str, Enum):
    """Kind of connectivity test, as emitted by the prober."""
    SELF = "pod-self"
    POD_SAME_NODE = "pod-pod-local"
    POD_DIFFERENT_NODE = "pod-pod-remote"
    NODE_OWN = "pod-node-local"
    NODE_DIFFERENT = "pod-node-remote"

    @property
    def description(self) -> str:
        return _TEST_DESCRIPTIONS[self]


_TEST_DESCRIPTIONS = {
    TestId.SELF: "To itself",
    TestId.POD_SAME_NODE: "To pod on same node",
    TestId.POD_DIFFERENT_NODE: "To pod on different node",
    TestId.NODE_OWN: "To own node",
    TestId.NODE_DIFFERENT: "To different node",
}


class TestResult(BaseModel):
    """One connectivity test result, decoded from a single log line."""

    model_config = ConfigDict(frozen=True)

    test_id: TestId
    target_ip: str = Field(min_length=1)
    target_name: str = Field(min_length=1)
    success: StrictBool


@dataclass(frozen=True)
class DecodeError:
    """A log line that is not a valid test result.

    Attributes:
        line_number: One-based position of the line in the stream.
        line: The raw line content.
        reason: Why decoding failed.
    """

    line_number: int
    line: str
    reason: str


class StreamEnd(str, Enum):
    """How a result stream ended."""
    SENTINEL = "sentinel"
    CLOSED = "closed"


# ============================================================================
# Summaries
# ============================================================================

@dataclass
class VariantSummary:
    """Outcome counts for one variant run."""

    variant: RunVariant
    passed: int = 0
    failed: int = 0
    decode_errors: int = 0
    identity: InstanceIdentity | None = None
    stream_end: StreamEnd | None = None
    error: str | None = None

    def record(self, item: TestResult | DecodeError) -> None:
        if isinstance(item, DecodeError):
            self.decode_errors += 1
        elif item.success:
            self.passed += 1
        else:
            self.failed += 1

    @property
    def total(self) -> int:
        return self.passed + self.failed

    @property
    def closed_early(self) -> bool:
        return self.stream_end is StreamEnd.CLOSED

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.stream_end is StreamEnd.SENTINEL
            and self.failed == 0
            and self.decode_errors == 0
        )


@dataclass
class RunSummary:
    """Per-variant outcomes of a complete run, in variant order."""

    inventory: Inventory
    variants: list[VariantSummary] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.variants) and all(v.ok for v in self.variants)

    @property
    def exit_code(self) -> int:
        return EXIT_OK if self.ok else EXIT_FAILURE
