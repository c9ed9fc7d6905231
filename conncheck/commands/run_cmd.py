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

"""Run subcommand: launch probers for each variant and report their results."""

from __future__ import annotations

import typer

from conncheck import console, orchestrator
from conncheck.config import display_config, resolve_config, select_variants
from conncheck.constants import EXIT_CANCELLED, EXIT_FAILURE
from conncheck.errors import Cancelled, ConncheckError
from conncheck.kubectl import KubectlControlPlane, resolve_session
from conncheck.models import VariantId
from conncheck.reporting import ConsoleReporter, print_summary
from conncheck.utils import require_command


def run(
    variant: list[VariantId] | None = typer.Option(
        None, "--variant", help="Variant to run (repeatable, default: all)"),
    parallel: bool | None = typer.Option(
        None, "--parallel/--sequential", help="Run variants concurrently (overrides CONNCHECK_PARALLEL)"),
    fleet_timeout: float | None = typer.Option(
        None, "--fleet-timeout", help="Seconds to wait for the target DaemonSet"),
    running_timeout: float | None = typer.Option(
        None, "--running-timeout", help="Seconds to wait for each prober Pod to run"),
    node_selector: str | None = typer.Option(
        None, "--node-selector", help="Label selector restricting target nodes"),
    in_cluster: bool | None = typer.Option(
        None, "--in-cluster/--out-of-cluster", help="Connect with the Pod's service account"),
    namespace: str | None = typer.Option(
        None, "--namespace", "-n", help="Namespace of targets and probers"),
    context: str | None = typer.Option(
        None, "--context", help="kubeconfig context"),
) -> None:
    """Run the connectivity checks of every variant and report the results.

    Exits non-zero if any test failed, any result was undecodable, or any
    variant could not run to completion.
    """
    run_cfg, session_cfg = resolve_config(
        in_cluster=in_cluster,
        namespace=namespace,
        context=context,
        node_selector=node_selector,
        fleet_timeout=fleet_timeout,
        running_timeout=running_timeout,
        parallel=parallel,
    )
    variants = select_variants(variant)
    display_config(run_cfg, session_cfg, variants)

    try:
        require_command("kubectl", hint="Install kubectl, or run conncheck from an image that ships it.")
        control_plane = KubectlControlPlane(resolve_session(session_cfg))
        summary = orchestrator.run(control_plane, variants, ConsoleReporter(), run_cfg)
    except Cancelled as err:
        console.print(f"[yellow]\u26a0\ufe0f  {err}[/yellow]")
        raise typer.Exit(EXIT_CANCELLED) from err
    except (ConncheckError, RuntimeError) as err:
        console.print(f"[red]\u274c {err}[/red]")
        raise typer.Exit(EXIT_FAILURE) from err

    print_summary(summary)
    if summary.ok:
        console.print("[green]\u2705 All connectivity checks passed[/green]")
    else:
        console.print("[red]\u274c Some connectivity checks did not pass[/red]")
    raise typer.Exit(summary.exit_code)
