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
Exceptions raised while building, running and sequencing module containers.
"""
from typing import List, Optional


class PodmodError(Exception):
    """
    Base class for all errors raised by podmod.
    """


class UnsupportedFeatureError(PodmodError):
    """
    Raised when an image descriptor asks for something the builder cannot render.
    """


class ProcessExecutionError(PodmodError):
    """
    Raised when a container command cannot be spawned or exits non-zero.
    """
    def __init__(self, command: str, exit_code: Optional[int], message: str = ""):
        """
        :param command: The rendered command line.
        :param exit_code: Exit code of the child, or None if it never started.
        :param message: Extra detail, such as the OS error text.
        """
        self.command = command
        self.exit_code = exit_code
        if not message:
            message = f"exit status {exit_code}"
        super().__init__(f"{command}: {message}")


class HandlerExistsError(PodmodError):
    """
    Raised when a second handler is registered for the same lifecycle state.
    """
    def __init__(self, state):
        self.state = state
        super().__init__(f"handler for state {state} already exists")


class InvalidApiVersionError(PodmodError, ValueError):
    """
    Raised when an apiVersion value is not of the form ``namespace/version``.
    """


class UnsupportedManifestError(PodmodError):
    """
    Raised when a manifest loads but names an unsupported apiVersion or kind.
    The parsed module is kept on ``module`` so callers can still inspect it.
    """
    def __init__(self, module, reasons: List[str]):
        self.module = module
        self.reasons = reasons
        super().__init__(f"module version {module.api_version} is not supported")
