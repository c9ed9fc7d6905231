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

"""Constants for target discovery, prober workloads, and the result protocol."""

from __future__ import annotations

# -- Target fleet --
DEFAULT_TARGET_DAEMONSET = "conncheck-target"
DEFAULT_TARGET_SELECTOR = "app=conncheck-target"

# -- Prober workload --
DEFAULT_PROBER_IMAGE = "weibeld/k8s-conncheck-prober"
DEFAULT_IMAGE_PULL_POLICY = "Always"
PROBER_CONTAINER_NAME = "k8s-conncheck-prober"
PROBER_RESTART_POLICY = "OnFailure"
PROBER_NAME_POD_NETWORK = "conncheck-prober"
PROBER_NAME_HOST_NETWORK = "conncheck-prober-host"

# -- Prober environment --
ENV_PODS = "PODS"
ENV_NODES = "NODES"
ENV_SELF_IP = "SELF_IP"
ENV_SELF_POD = "SELF_POD"
ENV_SELF_NODE = "SELF_NODE"

# Resolved by the kubelet through the downward API, not by the controller.
DOWNWARD_API_FIELDS = {
    ENV_SELF_IP: "status.podIP",
    ENV_SELF_POD: "metadata.name",
    ENV_SELF_NODE: "spec.nodeName",
}

# -- Result stream protocol --
SENTINEL = "EOF"

# -- Pod phases --
PHASE_PENDING = "Pending"
PHASE_RUNNING = "Running"
PHASE_SUCCEEDED = "Succeeded"
PHASE_FAILED = "Failed"
# A prober that already exited still serves its logs.
STARTED_PHASES = (PHASE_RUNNING, PHASE_SUCCEEDED)

# -- Node addresses --
ADDRESS_TYPE_INTERNAL_IP = "InternalIP"

# -- In-cluster session --
DEFAULT_KUBELET_CONFIG = "/etc/kubernetes/kubelet.conf"
SERVICE_ACCOUNT_DIR = "/var/run/secrets/kubernetes.io/serviceaccount"
SERVICE_ACCOUNT_CA = f"{SERVICE_ACCOUNT_DIR}/ca.crt"
SERVICE_ACCOUNT_TOKEN = f"{SERVICE_ACCOUNT_DIR}/token"

# -- Timing defaults (seconds) --
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_FLEET_TIMEOUT = 600.0
DEFAULT_RUNNING_TIMEOUT = 300.0
KUBECTL_TIMEOUT = 30
LOG_STREAM_CANCEL_CHECK_SECONDS = 0.5
LOG_STREAM_TERMINATE_GRACE_SECONDS = 5

# -- Exit codes --
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130
