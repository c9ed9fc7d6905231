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

"""Target inventory collection."""

from __future__ import annotations

from pydantic import ValidationError

from conncheck import console, logger
from conncheck.errors import CollectionError, ControlPlaneError
from conncheck.kubectl import ControlPlane
from conncheck.models import Inventory, TargetNode, TargetPod


def collect(
    control_plane: ControlPlane,
    target_selector: str,
    node_selector: str | None = None,
) -> Inventory:
    """Snapshot the target Pods and nodes of the cluster.

    Args:
        control_plane: Control plane to query.
        target_selector: Label selector matching the target Pods.
        node_selector: Label selector restricting target nodes, or None for all.

    Returns:
        The collected inventory.

    Raises:
        CollectionError: If a listing fails or a record lacks a required field.
    """
    try:
        pod_records = control_plane.list_pods(target_selector)
        node_records = control_plane.list_nodes(node_selector)
    except ControlPlaneError as err:
        raise CollectionError(f"Failed to list targets: {err}") from err

    try:
        pods = tuple(TargetPod.model_validate(record) for record in pod_records)
    except ValidationError as err:
        raise CollectionError("Malformed target Pod record", {"errors": err.error_count()}) from err
    try:
        nodes = tuple(
            TargetNode(name=record.get("name"), ip=record.get("internal_ip"))
            for record in node_records
        )
    except ValidationError as err:
        raise CollectionError("Malformed node record (missing name or InternalIP)",
                              {"errors": err.error_count()}) from err

    inventory = Inventory(pods=pods, nodes=nodes)
    if inventory.is_empty:
        console.print(f"[yellow]\u26a0\ufe0f  No target Pods match '{target_selector}'; probers have nothing to reach[/yellow]")
    logger.info("Collected %d target Pods and %d nodes", len(pods), len(nodes))
    return inventory
