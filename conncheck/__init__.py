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

"""conncheck - Kubernetes cluster connectivity check controller."""

from __future__ import annotations

import io
import logging
import threading
from contextlib import contextmanager

from rich.console import Console
from rich.text import Text


class ThreadAwareConsole:
    """Console proxy that routes to thread-local buffers when set.

    Variants running in worker threads each buffer their output, which is
    replayed in variant order so every variant reads as one block.
    """

    def __init__(self, real_console: Console) -> None:
        object.__setattr__(self, "_real", real_console)
        object.__setattr__(self, "_local", threading.local())

    def __getattr__(self, name: str):
        target = getattr(self._local, "console", self._real)
        return getattr(target, name)

    @contextmanager
    def buffered(self):
        """Buffer all console output for the current thread.

        The buffer keeps the colour settings of the real console so a
        flushed block renders the same as direct output.
        """
        buf = io.StringIO()
        self._local.console = Console(
            file=buf,
            stderr=False,
            force_terminal=self._real.is_terminal,
            color_system=self._real.color_system,
            width=self._real.width,
        )
        try:
            yield buf
        finally:
            del self._local.console

    def print_block(self, captured: str) -> None:
        """Replay output captured by :meth:`buffered` on the real console.

        Captured ANSI styling is kept, and the text is not re-parsed as markup.
        """
        if captured:
            # from_ansi drops the trailing newline; print restores it
            self._real.print(Text.from_ansi(captured))


console = ThreadAwareConsole(Console(stderr=True))
logger = logging.getLogger("conncheck")
