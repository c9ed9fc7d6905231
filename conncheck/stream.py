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

"""Decoding of the prober's line-oriented result stream.

Each line is one JSON test result. The literal line ``EOF`` ends the stream;
anything after it is ignored. A line that is not a valid result becomes a
:class:`DecodeError` item so later results are still delivered.

Blank or whitespace-only lines are transport noise, not records: they are
skipped without a :class:`DecodeError`, but still count towards line numbers.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pydantic import ValidationError

from conncheck import logger
from conncheck.constants import SENTINEL
from conncheck.models import DecodeError, StreamEnd, TestResult

StreamItem = TestResult | DecodeError


def decode_line(line: str, line_number: int) -> StreamItem:
    """Decode a single log line into a test result or a decode error."""
    try:
        return TestResult.model_validate_json(line)
    except ValidationError as err:
        first = err.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        reason = f"{location}: {first['msg']}" if location else first["msg"]
        return DecodeError(line_number=line_number, line=line, reason=reason)


class ResultStream:
    """Single-pass iterator over the decoded items of a prober log stream.

    After iteration finishes, :attr:`end` tells whether the stream ended on
    the sentinel or because the underlying transport closed.
    """

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines = lines
        self._iterator: Iterator[StreamItem] | None = None
        self.end: StreamEnd | None = None

    def __iter__(self) -> Iterator[StreamItem]:
        if self._iterator is None:
            self._iterator = self._decode()
        return self._iterator

    def _decode(self) -> Iterator[StreamItem]:
        for line_number, raw in enumerate(self._lines, start=1):
            line = raw.strip()
            if line == SENTINEL:
                self.end = StreamEnd.SENTINEL
                return
            # blank lines carry no record
            if not line:
                continue
            item = decode_line(line, line_number)
            if isinstance(item, DecodeError):
                logger.warning("Undecodable result on line %d: %s", line_number, item.reason)
            yield item
        self.end = StreamEnd.CLOSED

    @property
    def closed_without_sentinel(self) -> bool:
        return self.end is StreamEnd.CLOSED


def decode(lines: Iterable[str]) -> ResultStream:
    """Wrap a raw line stream into a lazily decoded result stream."""
    return ResultStream(lines)
