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

"""Orchestration of a connectivity check run across prober variants."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from rich.panel import Panel

from conncheck import console, logger
from conncheck.config import RunConfig
from conncheck.errors import Cancelled, ControlPlaneError, StreamError, VariantError
from conncheck.inventory import collect
from conncheck.kubectl import ControlPlane
from conncheck.models import (
    Inventory,
    LifecycleState,
    ProberInstance,
    RunSummary,
    RunVariant,
    VariantId,
    VariantSummary,
)
from conncheck.prober import await_running, launched_prober
from conncheck.readiness import await_fleet_ready
from conncheck.reporting import Reporter
from conncheck.stream import decode

# ============================================================================
# Internal helpers
# ============================================================================


def _stream_results(
    control_plane: ControlPlane,
    instance: ProberInstance,
    reporter: Reporter,
    summary: VariantSummary,
    cancel: threading.Event,
) -> None:
    """Deliver every decoded item of the prober's log stream to the reporter.

    Raises:
        StreamError: If the log stream cannot be opened or breaks.
        Cancelled: If *cancel* is set while streaming.
    """
    reporter.init(instance.identity)
    try:
        instance.state = LifecycleState.STREAMING
        try:
            with control_plane.stream_logs(instance.ref, cancel) as lines:
                stream = decode(lines)
                for item in stream:
                    summary.record(item)
                    reporter.on_result(item)
        except ControlPlaneError as err:
            raise StreamError(f"Lost log stream of Pod '{instance.name}'",
                              {"reason": err.stderr.strip() or err.message}) from err
        if cancel.is_set():
            raise Cancelled(f"Cancelled while streaming results of Pod '{instance.name}'")

        summary.stream_end = stream.end
        instance.state = LifecycleState.COMPLETED
        if stream.closed_without_sentinel:
            console.print(f"[yellow]\u26a0\ufe0f  Log stream of Pod '{instance.name}' closed before EOF; "
                          "results may be incomplete[/yellow]")
    finally:
        reporter.finalize()


def _run_parallel(
    variants: Sequence[RunVariant],
    run_one: Callable[[RunVariant], VariantSummary],
    cancel: threading.Event,
) -> list[VariantSummary]:
    """Run variants concurrently, printing each variant's output as a clean block.

    Args:
        variants: Variants to run.
        run_one: Runs a single variant.
        cancel: Cancellation token, set when any variant raises.

    Returns:
        Variant summaries in the order of *variants*.
    """
    outputs: dict[VariantId, str] = {}
    results: dict[VariantId, VariantSummary] = {}
    lock = threading.Lock()

    def _run_task(variant: RunVariant) -> None:
        with console.buffered() as buf:
            try:
                summary = run_one(variant)
            finally:
                with lock:
                    outputs[variant.id] = buf.getvalue()
        with lock:
            results[variant.id] = summary

    try:
        with ThreadPoolExecutor(max_workers=len(variants)) as executor:
            futures = {executor.submit(_run_task, variant): variant for variant in variants}
            try:
                for future in as_completed(futures):
                    future.result()
            except BaseException:
                cancel.set()
                raise
    finally:
        for variant in variants:
            console.print_block(outputs.get(variant.id, ""))

    return [results[variant.id] for variant in variants]


# ============================================================================
# Public API
# ============================================================================

def run_variant(
    control_plane: ControlPlane,
    variant: RunVariant,
    inventory: Inventory,
    reporter: Reporter,
    run_cfg: RunConfig,
    cancel: threading.Event | None = None,
) -> VariantSummary:
    """Run one prober variant from launch to teardown.

    Variant-scoped failures are recorded in the returned summary. The prober
    Pod is torn down on every exit path once it has been created.

    Args:
        control_plane: Control plane to drive.
        variant: Variant to run.
        inventory: Targets for the prober.
        reporter: Receives the prober's results.
        run_cfg: Run configuration.
        cancel: Cancellation token, or None.

    Returns:
        Outcome counts of the variant.

    Raises:
        Cancelled: If *cancel* is set during the run.
    """
    cancel = cancel or threading.Event()
    summary = VariantSummary(variant=variant)
    console.print(Panel.fit(f"Checking {variant.display_name}", style="bold blue"))
    try:
        with launched_prober(control_plane, variant, inventory, run_cfg) as instance:
            await_running(
                control_plane,
                instance,
                poll_interval=run_cfg.poll_interval,
                timeout=run_cfg.running_timeout,
                cancel=cancel,
            )
            summary.identity = instance.identity
            _stream_results(control_plane, instance, reporter, summary, cancel)
    except VariantError as err:
        summary.error = str(err)
        console.print(f"[red]\u274c {variant.display_name}: {err}[/red]")
        logger.error("Variant %s failed: %s", variant.id.value, err)
    return summary


def run(
    control_plane: ControlPlane,
    variants: Sequence[RunVariant],
    reporter: Reporter,
    run_cfg: RunConfig,
    cancel: threading.Event | None = None,
) -> RunSummary:
    """Orchestrate a full connectivity check run.

    Waits for the target DaemonSet, collects the inventory once, then runs
    each variant in order (or concurrently when ``run_cfg.parallel`` is set).
    One variant's failure does not stop the others.

    Args:
        control_plane: Control plane to drive.
        variants: Variants to run, in order.
        reporter: Receives every result; must be thread-safe in parallel mode.
        run_cfg: Run configuration.
        cancel: Cancellation token, or None.

    Returns:
        Per-variant outcomes.

    Raises:
        ReadinessTimeout: If the target DaemonSet does not become ready.
        CollectionError: If the inventory cannot be collected.
        Cancelled: If the run is cancelled or interrupted.
    """
    cancel = cancel or threading.Event()
    try:
        await_fleet_ready(
            control_plane,
            run_cfg.target_daemonset,
            poll_interval=run_cfg.poll_interval,
            timeout=run_cfg.fleet_timeout,
            cancel=cancel,
        )
        inventory = collect(control_plane, run_cfg.target_selector, run_cfg.node_selector)
        summary = RunSummary(inventory=inventory)

        def run_one(variant: RunVariant) -> VariantSummary:
            return run_variant(control_plane, variant, inventory, reporter, run_cfg, cancel)

        if run_cfg.parallel and len(variants) > 1:
            summary.variants.extend(_run_parallel(variants, run_one, cancel))
        else:
            for variant in variants:
                summary.variants.append(run_one(variant))
    except KeyboardInterrupt as err:
        cancel.set()
        raise Cancelled("Run interrupted") from err
    return summary
