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

"""Utility functions for kubectl and command checks."""

from __future__ import annotations

import subprocess
from pathlib import Path

import sh
import yaml

from conncheck import logger
from conncheck.constants import KUBECTL_TIMEOUT

REDACTED = "***"


def require_command(cmd: str, hint: str | None = None) -> None:
    """Check that a command resolves on the system PATH.

    The lookup is done by ``sh`` itself, so it also works in minimal images
    that ship no ``which`` binary.

    Args:
        cmd: Name of the CLI command to check.
        hint: How to obtain the command, appended to the error message.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.Command(cmd)
    except sh.CommandNotFound as err:
        raise RuntimeError(f"Required command '{cmd}' not found on PATH. {hint or 'Please install it first.'}") from err


def redact(args: list[str]) -> list[str]:
    """Mask bearer tokens in kubectl arguments so they can be logged."""
    masked = list(args)
    for i, arg in enumerate(masked):
        if arg == "--token" and i + 1 < len(masked):
            masked[i + 1] = REDACTED
        elif arg.startswith("--token="):
            masked[i] = f"--token={REDACTED}"
    return masked


def run_kubectl(
    args: list[str],
    timeout: int = KUBECTL_TIMEOUT,
    input: str | None = None,
) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    The command is logged at debug level with its token redacted. A timeout
    is reported as a failure whose stderr names the limit.

    Args:
        args: kubectl arguments, session flags included.
        timeout: Maximum seconds to wait for the command to complete.
        input: Manifest or other text to send on stdin, or None.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    logger.debug("kubectl %s", " ".join(redact(args)))
    try:
        result = subprocess.run(
            ["kubectl", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            input=input,
        )
    except subprocess.TimeoutExpired:
        return False, "", f"kubectl did not finish within {timeout}s"
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)
    return result.returncode == 0, result.stdout, result.stderr


def spawn_kubectl(args: list[str]) -> subprocess.Popen:
    """Start a long-running kubectl command with line-buffered text stdout.

    Args:
        args: kubectl arguments (e.g. ``["logs", "-f", "my-pod"]``).

    Returns:
        The started process; stderr is captured separately from stdout.
    """
    logger.debug("kubectl %s", " ".join(redact(args)))
    return subprocess.Popen(
        ["kubectl", *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        bufsize=1,
    )


def read_kubeconfig_server(path: Path) -> str:
    """Read the API server URL of the first cluster in a kubeconfig file.

    Args:
        path: Path to a kubeconfig file (e.g. the kubelet's ``kubelet.conf``).

    Returns:
        The ``clusters[0].cluster.server`` value.

    Raises:
        ValueError: If the file has no cluster server entry.
        OSError: If the file cannot be read.
    """
    with open(path) as f:
        kubeconfig = yaml.safe_load(f) or {}
    try:
        return kubeconfig["clusters"][0]["cluster"]["server"]
    except (KeyError, IndexError, TypeError) as err:
        raise ValueError(f"No cluster server found in {path}") from err
