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

"""
cli.py - Kubernetes cluster connectivity check.

Subcommands:
    run        Launch a prober per network variant and report its results
    inventory  Show the target Pods and nodes
    manifest   Print a variant's prober Pod manifest
    cleanup    Delete prober Pods left behind by an aborted run

Environment Variables:
    Defaults can be overridden via CONNCHECK_* environment variables, e.g.
    - CONNCHECK_TARGET_DAEMONSET (default: conncheck-target)
    - CONNCHECK_PROBER_IMAGE (default: weibeld/k8s-conncheck-prober)
    - CONNCHECK_RUNNING_TIMEOUT (default: 300)
    - CONNCHECK_IN_CLUSTER (default: false)

Examples:
    # Check both Pod network and host network
    conncheck run

    # Only the host network, from inside the cluster
    conncheck run --variant host-network --in-cluster
"""

from __future__ import annotations

import logging
import sys

import typer

from conncheck import console
from conncheck.commands import cleanup_cmd, inventory_cmd, run_cmd

app = typer.Typer(
    help="Kubernetes cluster connectivity check.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.command("run")(run_cmd.run)
app.command("inventory")(inventory_cmd.inventory)
app.command("manifest")(inventory_cmd.manifest)
app.command("cleanup")(cleanup_cmd.cleanup)


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
