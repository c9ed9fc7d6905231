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

import json

import pytest
from pydantic import ValidationError

from conncheck import models
from conncheck.config import VARIANTS


def _inventory() -> models.Inventory:
    return models.Inventory(
        pods=(models.TargetPod(name="t-a", ip="10.244.0.10", node="node-a"),),
        nodes=(models.TargetNode(name="node-a", ip="192.168.0.1"),),
    )


def test_inventory_env_is_compact_json():
    env = _inventory().to_env()

    assert set(env) == {"PODS", "NODES"}
    assert json.loads(env["PODS"]) == [{"name": "t-a", "ip": "10.244.0.10", "node": "node-a"}]
    assert json.loads(env["NODES"]) == [{"name": "node-a", "ip": "192.168.0.1"}]
    assert " " not in env["PODS"]


def test_inventory_env_round_trip():
    inventory = _inventory()

    assert models.Inventory.from_env(inventory.to_env()) == inventory


def test_empty_inventory_serializes_to_empty_arrays():
    inventory = models.Inventory()

    assert inventory.is_empty
    assert inventory.to_env() == {"PODS": "[]", "NODES": "[]"}


def test_target_fields_must_be_non_empty():
    with pytest.raises(ValidationError):
        models.TargetPod(name="t-a", ip="", node="node-a")


def test_identity_requires_resolved_addresses():
    instance = models.ProberInstance(variant=VARIANTS[0], ref=models.ObjectRef("Pod", "conncheck-prober"))

    with pytest.raises(ValueError):
        instance.identity

    instance.ip, instance.host_node, instance.host_node_ip = "10.244.0.5", "node-a", "192.168.0.1"
    assert instance.identity == models.InstanceIdentity("conncheck-prober", "10.244.0.5", "node-a", "192.168.0.1")


def test_variant_summary_counts():
    summary = models.VariantSummary(variant=VARIANTS[0])
    summary.record(models.TestResult(test_id="pod-self", target_ip="1.1.1.1", target_name="a", success=True))
    summary.record(models.TestResult(test_id="pod-self", target_ip="1.1.1.1", target_name="a", success=False))
    summary.record(models.DecodeError(line_number=3, line="x", reason="bad"))

    assert (summary.passed, summary.failed, summary.decode_errors, summary.total) == (1, 1, 1, 2)


@pytest.mark.parametrize(
    "changes, ok",
    [
        ({}, True),
        ({"failed": 1}, False),
        ({"decode_errors": 1}, False),
        ({"stream_end": models.StreamEnd.CLOSED}, False),
        ({"stream_end": None}, False),
        ({"error": "boom"}, False),
    ],
)
def test_variant_summary_ok(changes, ok):
    fields = {"passed": 5, "stream_end": models.StreamEnd.SENTINEL, **changes}
    summary = models.VariantSummary(variant=VARIANTS[0], **fields)

    assert summary.ok is ok


def test_run_summary_exit_code():
    good = models.VariantSummary(variant=VARIANTS[0], passed=5, stream_end=models.StreamEnd.SENTINEL)
    bad = models.VariantSummary(variant=VARIANTS[1], error="Failed to create Pod")

    assert models.RunSummary(inventory=_inventory(), variants=[good]).exit_code == 0
    assert models.RunSummary(inventory=_inventory(), variants=[good, bad]).exit_code == 1
    assert models.RunSummary(inventory=_inventory()).exit_code == 1
