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

"""Reporter interface driven by the orchestrator, and its console implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from conncheck import console
from conncheck.models import DecodeError, InstanceIdentity, RunSummary, TestResult


class Reporter(ABC):
    """Receives the results of each prober run.

    For every prober that reaches the Running phase, :meth:`init` is called
    once, then :meth:`on_result` once per stream item in stream order, then
    :meth:`finalize` once before the prober is deleted.
    """

    @abstractmethod
    def init(self, identity: InstanceIdentity) -> None:
        """Called after the prober is running, before the first result."""

    @abstractmethod
    def on_result(self, item: TestResult | DecodeError) -> None:
        """Called for each decoded result or undecodable line."""

    @abstractmethod
    def finalize(self) -> None:
        """Called after the result stream has ended."""


class ConsoleReporter(Reporter):
    """Renders one coloured status line per test result."""

    def init(self, identity: InstanceIdentity) -> None:
        pass

    def on_result(self, item: TestResult | DecodeError) -> None:
        if isinstance(item, DecodeError):
            console.print(f"[yellow]  \u26a0\ufe0f  Undecodable result on line {item.line_number}: "
                          f"{escape(item.reason)}[/yellow]")
            return
        target = f"(\"{escape(item.target_name)}\" {item.target_ip})"
        if item.success:
            console.print(f"[bold green]  \u2705 {item.test_id.description} {target}[/bold green]")
        else:
            console.print(f"[bold red]  \u26d4 {item.test_id.description} {target}[/bold red]")

    def finalize(self) -> None:
        pass


def print_summary(summary: RunSummary) -> None:
    """Print per-variant result counts as a table."""
    console.print(Panel.fit("Summary", style="bold blue"))
    table = Table()
    table.add_column("Variant")
    table.add_column("Prober")
    table.add_column("Tests", justify="right")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Undecodable", justify="right", style="yellow")
    table.add_column("Status")
    for variant in summary.variants:
        if variant.error:
            status = f"[red]{escape(variant.error)}[/red]"
        elif variant.closed_early:
            status = "[yellow]stream closed without EOF[/yellow]"
        elif variant.ok:
            status = "[green]ok[/green]"
        else:
            status = "[red]failures[/red]"
        table.add_row(
            variant.variant.display_name,
            variant.variant.prober_name,
            str(variant.total),
            str(variant.passed),
            str(variant.failed),
            str(variant.decode_errors),
            status,
        )
    console.print(table)
