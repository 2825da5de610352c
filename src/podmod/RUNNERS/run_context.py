# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
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

"""
Shared, caller-owned state for a sequence of container invocations.
"""
from dataclasses import dataclass, field
from typing import IO, Any, List, Optional
import structlog


@dataclass
class RunContext:
    """
    Streams, logger and accumulated errors shared by every runner call.

    The runner appends to ``errors`` on failure and never clears it, so the
    list is the history of everything that went wrong. ``last_err_code`` is
    reset before each invocation.
    """
    input: Optional[IO] = None
    out: Optional[IO] = None
    err: Optional[IO] = None
    log: Any = field(default_factory=lambda: structlog.get_logger("podmod"))
    errors: List[Exception] = field(default_factory=list)
    last_err_code: int = 0

    def add_error(self, error: Exception):
        self.errors.append(error)

    def reset(self):
        """
        Clears the last exit code. Accumulated errors are kept.
        """
        self.last_err_code = 0

    def set_last_err_code(self, err_code: int):
        self.last_err_code = err_code

    def is_errored(self) -> bool:
        return len(self.errors) > 0 or self.last_err_code != 0
