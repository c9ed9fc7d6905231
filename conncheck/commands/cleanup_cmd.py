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

"""Cleanup subcommand: remove prober Pods left behind by an aborted run."""

from __future__ import annotations

import typer

from conncheck import console
from conncheck.config import SessionConfig, select_variants
from conncheck.constants import EXIT_FAILURE
from conncheck.errors import ConncheckError
from conncheck.kubectl import KubectlControlPlane, resolve_session
from conncheck.models import ObjectRef


def cleanup(
    namespace: str | None = typer.Option(
        None, "--namespace", "-n", help="Namespace of the prober Pods"),
    context: str | None = typer.Option(
        None, "--context", help="kubeconfig context"),
) -> None:
    """Request deletion of every variant's prober Pod without waiting."""
    session_cfg = SessionConfig()
    overrides: dict = {}
    if namespace is not None:
        overrides["namespace"] = namespace
    if context is not None:
        overrides["context"] = context
    if overrides:
        session_cfg = session_cfg.model_copy(update=overrides)

    control_plane = KubectlControlPlane(resolve_session(session_cfg))
    failed = 0
    for variant in select_variants(None):
        ref = ObjectRef(kind="Pod", name=variant.prober_name, namespace=session_cfg.namespace)
        try:
            control_plane.delete_object(ref, wait=False, ignore_not_found=True)
            console.print(f"[green]  \u2713 {variant.prober_name}[/green]")
        except ConncheckError as err:
            failed += 1
            console.print(f"[red]  \u2717 {variant.prober_name} - {err}[/red]")
    if failed:
        raise typer.Exit(EXIT_FAILURE)
