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

"""Exception hierarchy for connectivity check runs.

Run-scoped errors (collection, fleet readiness, cancellation) abort the whole
run. Errors deriving from :class:`VariantError` are scoped to one prober
variant and are recorded in the run summary instead of being raised.
"""

from __future__ import annotations

from typing import Any


class ConncheckError(RuntimeError):
    """Base class for all connectivity check errors.

    Attributes:
        message: Human-readable error description.
        details: Extra context such as resource names or commands.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ControlPlaneError(ConncheckError):
    """A kubectl invocation failed."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = "") -> None:
        details: dict[str, Any] = {}
        if command:
            details["command"] = " ".join(command)
        if stderr:
            details["stderr"] = stderr.strip()[:300]
        super().__init__(message, details)
        self.command = command or []
        self.stderr = stderr


class CollectionError(ConncheckError):
    """The target inventory could not be collected."""


class ReadinessTimeout(ConncheckError):
    """A readiness condition did not hold before its deadline."""

    def __init__(self, description: str, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout:g}s waiting for {description}")
        self.description = description
        self.timeout = timeout


class Cancelled(ConncheckError):
    """The run was cancelled while waiting or streaming."""


class VariantError(ConncheckError):
    """Failure scoped to a single prober variant."""


class LaunchError(VariantError):
    """The prober Pod creation was rejected."""


class SchedulingError(VariantError):
    """The prober Pod never reached the Running phase."""


class StreamError(VariantError):
    """The prober log stream could not be read."""
