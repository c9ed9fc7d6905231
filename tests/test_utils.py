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

from __future__ import annotations

import io
import logging
import subprocess
import threading

import pytest
from rich.console import Console

from conncheck import ThreadAwareConsole, utils


def test_redact_masks_tokens():
    args = ["--server", "https://10.0.0.1:6443", "--token", "secret", "get", "pods", "--token=other"]

    assert utils.redact(args) == [
        "--server", "https://10.0.0.1:6443", "--token", "***", "get", "pods", "--token=***",
    ]
    assert args[3] == "secret"


def test_run_kubectl_logs_without_token(monkeypatch, caplog):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 0, stdout="ok", stderr="")

    monkeypatch.setattr(utils.subprocess, "run", fake_run)

    with caplog.at_level(logging.DEBUG, logger="conncheck"):
        assert utils.run_kubectl(["--token", "secret", "get", "pods"]) == (True, "ok", "")

    assert "get pods" in caplog.text
    assert "secret" not in caplog.text


def test_run_kubectl_timeout(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(utils.subprocess, "run", fake_run)

    ok, stdout, stderr = utils.run_kubectl(["get", "pods"], timeout=7)

    assert not ok
    assert stdout == ""
    assert "7s" in stderr


def test_require_command_missing_includes_hint():
    with pytest.raises(RuntimeError, match="Install it from the cluster image"):
        utils.require_command("conncheck-no-such-binary", hint="Install it from the cluster image.")


def test_buffered_output_stays_per_thread():
    real = io.StringIO()
    console = ThreadAwareConsole(Console(file=real, width=120))
    captured: dict[str, str] = {}

    def worker(name: str) -> None:
        with console.buffered() as buf:
            console.print(f"{name} line")
        captured[name] = buf.getvalue()

    threads = [threading.Thread(target=worker, args=(name,)) for name in ("pod", "host")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert real.getvalue() == ""
    assert captured == {"pod": "pod line\n", "host": "host line\n"}

    console.print_block(captured["pod"])
    console.print_block("")
    console.print_block(captured["host"])
    assert real.getvalue() == "pod line\nhost line\n"


def test_print_block_does_not_parse_markup():
    real = io.StringIO()
    console = ThreadAwareConsole(Console(file=real, width=120))

    console.print_block("[red]literal[/red]\n")

    assert real.getvalue() == "[red]literal[/red]\n"
