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

"""Configuration classes, compiled-in variants, and config resolution/display."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import typer
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from conncheck import console
from conncheck.constants import (
    DEFAULT_FLEET_TIMEOUT,
    DEFAULT_IMAGE_PULL_POLICY,
    DEFAULT_KUBELET_CONFIG,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PROBER_IMAGE,
    DEFAULT_RUNNING_TIMEOUT,
    DEFAULT_TARGET_DAEMONSET,
    DEFAULT_TARGET_SELECTOR,
    PROBER_NAME_HOST_NETWORK,
    PROBER_NAME_POD_NETWORK,
)
from conncheck.models import RunVariant, VariantId


# ============================================================================
# Configuration classes
# ============================================================================

class RunConfig(BaseSettings):
    """Run configuration, auto-loaded from CONNCHECK_* env vars.

    Attributes:
        target_daemonset: Name of the DaemonSet running the target Pods.
        target_selector: Label selector matching the target Pods.
        node_selector: Label selector restricting target nodes, or None for all nodes.
        prober_image: Container image of the prober workload.
        image_pull_policy: Image pull policy of the prober container.
        poll_interval: Seconds between readiness polls.
        fleet_timeout: Maximum seconds to wait for the target DaemonSet.
        running_timeout: Maximum seconds to wait for a prober Pod to run.
        parallel: Whether to run the variants concurrently.
    """

    model_config = SettingsConfigDict(env_prefix="CONNCHECK_", extra="ignore")

    target_daemonset: str = DEFAULT_TARGET_DAEMONSET
    target_selector: str = DEFAULT_TARGET_SELECTOR
    node_selector: str | None = None
    prober_image: str = DEFAULT_PROBER_IMAGE
    image_pull_policy: str = Field(default=DEFAULT_IMAGE_PULL_POLICY, pattern=r"^(Always|IfNotPresent|Never)$")
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    fleet_timeout: float = Field(default=DEFAULT_FLEET_TIMEOUT, gt=0)
    running_timeout: float = Field(default=DEFAULT_RUNNING_TIMEOUT, gt=0)
    parallel: bool = False


class SessionConfig(BaseSettings):
    """API server connection settings, auto-loaded from CONNCHECK_* env vars.

    Attributes:
        in_cluster: Whether to connect with the Pod's service account.
        server: API server URL override, or None.
        kubelet_config: Kubelet kubeconfig used to discover the server in-cluster.
        certificate_authority: CA bundle path override, or None.
        token_file: Bearer token file override, or None.
        context: kubeconfig context, or None for the current context.
        namespace: Namespace for prober Pods and targets, or None for the default.
    """

    model_config = SettingsConfigDict(env_prefix="CONNCHECK_", extra="ignore")

    in_cluster: bool = False
    server: str | None = None
    kubelet_config: Path = Path(DEFAULT_KUBELET_CONFIG)
    certificate_authority: Path | None = None
    token_file: Path | None = None
    context: str | None = None
    namespace: str | None = None


# ============================================================================
# Variants
# ============================================================================

VARIANTS: tuple[RunVariant, ...] = (
    RunVariant(
        id=VariantId.POD_NETWORK,
        display_name="Pod network",
        host_network=False,
        prober_name=PROBER_NAME_POD_NETWORK,
    ),
    RunVariant(
        id=VariantId.HOST_NETWORK,
        display_name="host network",
        host_network=True,
        prober_name=PROBER_NAME_HOST_NETWORK,
    ),
)


def select_variants(ids: Sequence[VariantId] | None) -> tuple[RunVariant, ...]:
    """Pick compiled-in variants by id, preserving the compiled-in order.

    Args:
        ids: Variant ids to run, or None/empty for all variants.

    Returns:
        The selected variants.
    """
    if not ids:
        return VARIANTS
    wanted = set(ids)
    return tuple(v for v in VARIANTS if v.id in wanted)


def variant_by_id(variant_id: VariantId) -> RunVariant:
    return next(v for v in VARIANTS if v.id == variant_id)


# ============================================================================
# Config resolution
# ============================================================================

def resolve_config(
    *,
    in_cluster: bool | None = None,
    namespace: str | None = None,
    context: str | None = None,
    node_selector: str | None = None,
    fleet_timeout: float | None = None,
    running_timeout: float | None = None,
    parallel: bool | None = None,
) -> tuple[RunConfig, SessionConfig]:
    """Merge CLI overrides, environment variables, and defaults into config objects.

    Resolution priority: CLI arguments > CONNCHECK_* environment variables > defaults.

    Args:
        in_cluster: CLI override for in-cluster mode, or None.
        namespace: CLI override for the namespace, or None.
        context: CLI override for the kubeconfig context, or None.
        node_selector: CLI override for the node selector, or None.
        fleet_timeout: CLI override for the fleet readiness timeout, or None.
        running_timeout: CLI override for the prober running timeout, or None.
        parallel: CLI override for parallel variant execution, or None.

    Returns:
        Tuple of (RunConfig, SessionConfig).

    Raises:
        typer.BadParameter: If in-cluster mode is combined with a kubeconfig context.
    """
    run_cfg = RunConfig()
    session_cfg = SessionConfig()

    run_overrides: dict = {}
    if node_selector is not None:
        run_overrides["node_selector"] = node_selector
    if fleet_timeout is not None:
        run_overrides["fleet_timeout"] = fleet_timeout
    if running_timeout is not None:
        run_overrides["running_timeout"] = running_timeout
    if parallel is not None:
        run_overrides["parallel"] = parallel
    if run_overrides:
        run_cfg = run_cfg.model_copy(update=run_overrides)

    session_overrides: dict = {}
    if in_cluster is not None:
        session_overrides["in_cluster"] = in_cluster
    if namespace is not None:
        session_overrides["namespace"] = namespace
    if context is not None:
        session_overrides["context"] = context
    if session_overrides:
        session_cfg = session_cfg.model_copy(update=session_overrides)

    if session_cfg.in_cluster and session_cfg.context:
        raise typer.BadParameter("--context cannot be combined with --in-cluster")

    return run_cfg, session_cfg


# ============================================================================
# Display
# ============================================================================

def display_config(
    run_cfg: RunConfig,
    session_cfg: SessionConfig,
    variants: Sequence[RunVariant],
) -> None:
    """Print the resolved configuration of a run.

    Args:
        run_cfg: Run configuration.
        session_cfg: API server connection settings.
        variants: Variants that will be run.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))

    console.print("[yellow]Cluster:[/yellow]")
    if session_cfg.in_cluster:
        console.print(f"  mode            : in-cluster ({session_cfg.server or session_cfg.kubelet_config})")
    else:
        console.print(f"  context         : {session_cfg.context or '(current)'}")
    console.print(f"  namespace       : {session_cfg.namespace or '(default)'}")

    console.print("[yellow]Targets:[/yellow]")
    console.print(f"  daemonset       : {run_cfg.target_daemonset}")
    console.print(f"  pod selector    : {run_cfg.target_selector}")
    console.print(f"  node selector   : {run_cfg.node_selector or '(all nodes)'}")

    console.print("[yellow]Probers:[/yellow]")
    console.print(f"  image           : {run_cfg.prober_image}")
    console.print(f"  variants        : {', '.join(v.id.value for v in variants)}")
    console.print(f"  parallel        : {run_cfg.parallel}")
    console.print(f"  fleet_timeout   : {run_cfg.fleet_timeout:g}s")
    console.print(f"  running_timeout : {run_cfg.running_timeout:g}s")
