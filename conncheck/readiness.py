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

"""Polling primitives for waiting on eventually consistent cluster state."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    stop_when_event_set,
    wait_fixed,
)

from conncheck import console, logger
from conncheck.errors import Cancelled, ControlPlaneError, ReadinessTimeout
from conncheck.kubectl import ControlPlane
from conncheck.models import FleetStatus

T = TypeVar("T")


def poll_until(
    query: Callable[[], T],
    predicate: Callable[[T], bool],
    *,
    poll_interval: float,
    timeout: float,
    description: str,
    cancel: threading.Event | None = None,
) -> T:
    """Re-run *query* every *poll_interval* seconds until *predicate* holds.

    A query raising :class:`ControlPlaneError` counts as "not ready yet". Any
    other exception from the query ends the wait and propagates unchanged.

    Args:
        query: Reads the current state.
        predicate: Decides whether the state is the awaited one.
        poll_interval: Seconds between queries.
        timeout: Maximum seconds to keep polling.
        description: What is being awaited, for messages.
        cancel: Cancellation token, or None.

    Returns:
        The first query result satisfying *predicate*.

    Raises:
        ReadinessTimeout: If the deadline passes first.
        Cancelled: If *cancel* is set while waiting.
    """
    cancel = cancel or threading.Event()
    retrying = Retrying(
        stop=stop_after_delay(timeout) | stop_when_event_set(cancel),
        wait=wait_fixed(poll_interval),
        retry=retry_if_exception_type(ControlPlaneError) | retry_if_result(lambda state: not predicate(state)),
        sleep=cancel.wait,
        before_sleep=before_sleep_log(logger, logging.DEBUG),
    )
    try:
        return retrying(query)
    except RetryError as err:
        if cancel.is_set():
            raise Cancelled(f"Cancelled while waiting for {description}") from err
        raise ReadinessTimeout(description, timeout) from err


def fleet_ready(status: FleetStatus) -> bool:
    return status.ready == status.desired


def await_fleet_ready(
    control_plane: ControlPlane,
    name: str,
    *,
    poll_interval: float,
    timeout: float,
    cancel: threading.Event | None = None,
) -> FleetStatus:
    """Block until every desired Pod of a DaemonSet is ready.

    Args:
        control_plane: Control plane to query.
        name: DaemonSet name.
        poll_interval: Seconds between status queries.
        timeout: Maximum seconds to wait.
        cancel: Cancellation token, or None.

    Returns:
        The final DaemonSet status.

    Raises:
        ReadinessTimeout: If the DaemonSet is not ready within *timeout*.
        Cancelled: If *cancel* is set while waiting.
    """
    console.print(f"[yellow]\u2139\ufe0f  Waiting for DaemonSet '{name}' to be ready...[/yellow]")
    status = poll_until(
        lambda: control_plane.get_fleet_status(name),
        fleet_ready,
        poll_interval=poll_interval,
        timeout=timeout,
        description=f"DaemonSet '{name}'",
        cancel=cancel,
    )
    console.print(f"[green]\u2705 DaemonSet '{name}' ready ({status.ready}/{status.desired} Pods)[/green]")
    return status
