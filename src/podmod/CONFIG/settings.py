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
Runtime settings resolved from the environment, outside the core library.
"""
import os
from typing import List, Mapping, Optional
from pydantic import BaseModel
from ..BUILDERS.cli_builder import CliParts, DEFAULT_PODMAN_PATH, DEFAULT_SUBCOMMAND

PODMAN_PATH_ENV = "ITZ_PODMAN_PATH"
WORKSPACE_ENV = "PODMOD_WORKSPACE"
LOG_LEVEL_ENV = "PODMOD_LOG_LEVEL"


class RuntimeSettings(BaseModel):
    """
    Settings for invoking the container runtime.
    """
    podman_path: str = DEFAULT_PODMAN_PATH
    subcommand: str = DEFAULT_SUBCOMMAND
    workspace: Optional[str] = None
    flags: List[str] = []
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RuntimeSettings":
        """
        Builds settings from environment variables, falling back to defaults.

        :param environ: Mapping to read instead of ``os.environ``.
        """
        env = os.environ if environ is None else environ
        values = {}
        if env.get(PODMAN_PATH_ENV):
            values["podman_path"] = env[PODMAN_PATH_ENV]
        if env.get(WORKSPACE_ENV):
            values["workspace"] = env[WORKSPACE_ENV]
        if env.get(LOG_LEVEL_ENV):
            values["log_level"] = env[LOG_LEVEL_ENV].upper()
        return cls(**values)

    def to_cli_parts(self) -> CliParts:
        return CliParts(path=self.podman_path, cmd=self.subcommand, flags=list(self.flags))
