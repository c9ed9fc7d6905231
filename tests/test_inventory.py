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

from __future__ import annotations

import pytest

from conncheck.errors import CollectionError, ControlPlaneError
from conncheck.inventory import collect

from conftest import FakeControlPlane


def test_collects_pods_and_nodes():
    control_plane = FakeControlPlane()
    inventory = collect(control_plane, "app=conncheck-target")

    assert [(p.name, p.ip, p.node) for p in inventory.pods] == [
        ("conncheck-target-a", "10.244.0.10", "node-a"),
        ("conncheck-target-b", "10.244.1.10", "node-b"),
    ]
    assert [(n.name, n.ip) for n in inventory.nodes] == [
        ("node-a", "192.168.0.1"),
        ("node-b", "192.168.0.2"),
    ]
    assert control_plane.calls == [("list_pods", "app=conncheck-target"), ("list_nodes", None)]


def test_node_selector_is_passed_through():
    control_plane = FakeControlPlane()
    collect(control_plane, "app=conncheck-target", "node-role.kubernetes.io/worker")

    assert ("list_nodes", "node-role.kubernetes.io/worker") in control_plane.calls


def test_no_target_pods_is_not_an_error():
    inventory = collect(FakeControlPlane(pods=[]), "app=conncheck-target")

    assert inventory.is_empty
    assert len(inventory.nodes) == 2


def test_pod_without_ip_fails():
    pods = [{"name": "conncheck-target-a", "ip": None, "node": "node-a"}]

    with pytest.raises(CollectionError):
        collect(FakeControlPlane(pods=pods), "app=conncheck-target")


def test_node_without_internal_ip_fails():
    nodes = [{"name": "node-a", "internal_ip": None}]

    with pytest.raises(CollectionError):
        collect(FakeControlPlane(nodes=nodes), "app=conncheck-target")


def test_listing_failure_fails():
    class Broken(FakeControlPlane):
        def list_pods(self, selector):
            raise ControlPlaneError("kubectl get failed", stderr="connection refused")

    with pytest.raises(CollectionError, match="connection refused"):
        collect(Broken(), "app=conncheck-target")
