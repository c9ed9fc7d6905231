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

"""Inventory and manifest subcommands."""

from __future__ import annotations

import json

import typer
import yaml
from rich.table import Table

from conncheck import console
from conncheck.config import RunConfig, SessionConfig, resolve_config, variant_by_id
from conncheck.constants import EXIT_FAILURE
from conncheck.errors import ConncheckError
from conncheck.inventory import collect
from conncheck.kubectl import KubectlControlPlane, resolve_session
from conncheck.models import Inventory, VariantId
from conncheck.prober import prober_manifest
from conncheck.readiness import await_fleet_ready


def _collect_inventory(run_cfg: RunConfig, session_cfg: SessionConfig, wait: bool) -> Inventory:
    """Optionally wait for the target DaemonSet, then collect the inventory."""
    try:
        control_plane = KubectlControlPlane(resolve_session(session_cfg))
        if wait:
            await_fleet_ready(
                control_plane,
                run_cfg.target_daemonset,
                poll_interval=run_cfg.poll_interval,
                timeout=run_cfg.fleet_timeout,
            )
        return collect(control_plane, run_cfg.target_selector, run_cfg.node_selector)
    except ConncheckError as err:
        console.print(f"[red]\u274c {err}[/red]")
        raise typer.Exit(EXIT_FAILURE) from err


def inventory(
    as_json: bool = typer.Option(
        False, "--json", help="Print the PODS/NODES values handed to the probers"),
    wait: bool = typer.Option(
        True, "--wait/--no-wait", help="Wait for the target DaemonSet first"),
    node_selector: str | None = typer.Option(
        None, "--node-selector", help="Label selector restricting target nodes"),
    in_cluster: bool | None = typer.Option(
        None, "--in-cluster/--out-of-cluster", help="Connect with the Pod's service account"),
    namespace: str | None = typer.Option(
        None, "--namespace", "-n", help="Namespace of the targets"),
    context: str | None = typer.Option(
        None, "--context", help="kubeconfig context"),
) -> None:
    """Show the target Pods and nodes the probers would test."""
    run_cfg, session_cfg = resolve_config(
        in_cluster=in_cluster, namespace=namespace, context=context, node_selector=node_selector,
    )
    targets = _collect_inventory(run_cfg, session_cfg, wait)

    if as_json:
        env = targets.to_env()
        typer.echo(json.dumps({name: json.loads(value) for name, value in env.items()}, indent=2))
        return

    pods = Table(title="Target Pods")
    pods.add_column("Name")
    pods.add_column("IP")
    pods.add_column("Node")
    for pod in targets.pods:
        pods.add_row(pod.name, pod.ip, pod.node)
    nodes = Table(title="Target nodes")
    nodes.add_column("Name")
    nodes.add_column("IP")
    for node in targets.nodes:
        nodes.add_row(node.name, node.ip)
    console.print(pods)
    console.print(nodes)


def manifest(
    variant: VariantId = typer.Option(
        VariantId.POD_NETWORK, "--variant", help="Variant to render the prober for"),
    wait: bool = typer.Option(
        False, "--wait/--no-wait", help="Wait for the target DaemonSet first"),
    node_selector: str | None = typer.Option(
        None, "--node-selector", help="Label selector restricting target nodes"),
    in_cluster: bool | None = typer.Option(
        None, "--in-cluster/--out-of-cluster", help="Connect with the Pod's service account"),
    namespace: str | None = typer.Option(
        None, "--namespace", "-n", help="Namespace of the targets"),
    context: str | None = typer.Option(
        None, "--context", help="kubeconfig context"),
) -> None:
    """Print the prober Pod manifest of a variant as YAML."""
    run_cfg, session_cfg = resolve_config(
        in_cluster=in_cluster, namespace=namespace, context=context, node_selector=node_selector,
    )
    targets = _collect_inventory(run_cfg, session_cfg, wait)
    typer.echo(yaml.safe_dump(prober_manifest(variant_by_id(variant), targets, run_cfg),
                              default_flow_style=False), nl=False)
