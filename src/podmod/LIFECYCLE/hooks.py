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
Registry of side-channel hook commands (list, validate, get_state).
"""
from typing import Callable, Dict, Iterator, Optional
import structlog
from ..MODELS.lifecycle_state import Hook
from ..MODELS.module_manifest import HookInfo, ImageInfo
from ..RUNNERS.process_runner import CliModuleRunner
from ..RUNNERS.run_context import RunContext

logger = structlog.get_logger()

HookCmd = Callable[..., None]


def _hook_key(name) -> Hook:
    try:
        return Hook(name)
    except ValueError:
        raise KeyError(name) from None


class HookRegistry:
    """
    Maps hook names to commands that run the hook's container.

    Hook commands never read or change lifecycle state.
    """
    def __init__(self, runner: CliModuleRunner, default_ctx: RunContext):
        """
        :param runner: Runner used to execute hook containers.
        :param default_ctx: Context used when a hook is invoked without one.
        """
        self.runner = runner
        self.default_ctx = default_ctx
        self._hooks: Dict[Hook, HookCmd] = {}

    def command_for(self, info: ImageInfo) -> HookCmd:
        """
        Binds an image descriptor into a hook command.

        :param info: The hook's image descriptor.
        :return: A callable taking an optional run context.
        """
        def hook_cmd(ctx: Optional[RunContext] = None):
            self.runner.run_image(ctx or self.default_ctx, info)
        return hook_cmd

    def add(self, name: Hook, cmd: HookCmd):
        self._hooks[_hook_key(name)] = cmd

    def add_all(self, hooks: HookInfo):
        """
        Registers the list, validate and get_state hooks of a manifest.
        """
        self.add(Hook.LIST, self.command_for(hooks.list_hook))
        self.add(Hook.VALIDATE, self.command_for(hooks.validate_hook))
        self.add(Hook.GET_STATE, self.command_for(hooks.get_state))

    def get(self, name: Hook) -> HookCmd:
        """
        :raises KeyError: If no hook of that name is registered.
        """
        logger.debug("getting_hook", hook=str(name))
        return self._hooks[_hook_key(name)]

    def run(self, name: Hook, ctx: Optional[RunContext] = None):
        self.get(name)(ctx)

    def __contains__(self, name) -> bool:
        try:
            return _hook_key(name) in self._hooks
        except KeyError:
            return False

    def __iter__(self) -> Iterator[Hook]:
        return iter(self._hooks)
