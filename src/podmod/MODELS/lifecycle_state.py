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
Lifecycle states and hook names for a deployable module.
"""
from enum import Enum
from typing import Tuple


class State(str, Enum):
    """
    States a module moves through while it is deployed.
    """
    INVALID = "invalid"
    INITIALIZING = "initializing"
    CONFIGURED = "configured"
    VALIDATED = "validated"
    PRE_DEPLOYING = "predeploying"
    PRE_DEPLOYED = "predeployed"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    POST_DEPLOYING = "postdeploying"
    POST_DEPLOYED = "postdeployed"
    DONE = "postdeployed"  # alias of POST_DEPLOYED
    ERRORED = "errored"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (State.DONE, State.ERRORED)


class Hook(str, Enum):
    """
    Side-channel hooks that can be run independently of the lifecycle.
    """
    LIST = "list"
    VALIDATE = "validate"
    GET_STATE = "get_state"

    def __str__(self) -> str:
        return self.value


DEFAULT_ORDER: Tuple[State, ...] = (
    State.INVALID,
    State.INITIALIZING,
    State.CONFIGURED,
    State.VALIDATED,
    State.PRE_DEPLOYING,
    State.PRE_DEPLOYED,
    State.DEPLOYING,
    State.DEPLOYED,
    State.POST_DEPLOYING,
    State.POST_DEPLOYED,
)
