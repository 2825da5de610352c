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
The deployment lifecycle of a module as a state machine.

Each lifecycle state has exactly one handler. The caller asks for the next
step, runs it, and the handler moves the module to its next state:

    for step in module:
        step(ctx, module)

Stage handlers run the stage's container and move to ``errored`` when it
fails. ``done`` and ``errored`` are terminal.
"""
from typing import Callable, Dict, Iterator, Optional, Protocol, Tuple
from ..BUILDERS.cli_builder import CliParts, PodmanCliBuilder
from ..MODELS.lifecycle_state import DEFAULT_ORDER, Hook, State
from ..MODELS.module_manifest import ImageInfo, ModuleInfo
from ..RUNNERS.process_runner import CliModuleRunner
from ..RUNNERS.run_context import RunContext
from ..errors import HandlerExistsError, PodmodError
from .hooks import HookCmd, HookRegistry


class Notifier(Protocol):
    """
    Receives state transitions from handlers.
    """
    @property
    def state(self) -> State: ...

    def notify(self, state: State): ...

    def notify_err(self, state: State, error: Exception): ...


StateCmd = Callable[[RunContext, Notifier], None]
StateResolver = Callable[["DeployableModule", RunContext], State]


def noop_handler(ctx: RunContext, notifier: Notifier):
    """
    Returned when the current state has no handler; resets the module to invalid.
    """
    notifier.notify(State.INVALID)


def done_handler(ctx: RunContext, notifier: Notifier):
    """
    Returned once the lifecycle has reached a terminal state.
    """


def advance_to(state: State) -> StateCmd:
    """
    Builds a handler that only moves the module to ``state``.
    """
    def handler(ctx: RunContext, notifier: Notifier):
        notifier.notify(state)
    return handler


def default_state_resolver(module: "DeployableModule", ctx: RunContext) -> State:
    # TODO: run the get_state hook and map its response event onto a State
    return State.CONFIGURED


class DeployableModule:
    """
    Drives a module through pre-deploy, deploy and post-deploy.
    """
    def __init__(self,
                 run_ctx: RunContext,
                 module: ModuleInfo,
                 workspace: Optional[str] = None,
                 cli_defaults: Optional[CliParts] = None,
                 state_resolver: Optional[StateResolver] = None):
        """
        Initializes the module at state ``invalid`` and registers its handlers and hooks.

        :param run_ctx: Caller-owned context shared by every step and hook.
        :param module: The module descriptor loaded from the manifest.
        :param workspace: Local directory mounted as the container workspace.
        :param cli_defaults: Defaults for the command builder (runtime path, flags...).
        :param state_resolver: Decides the state reached from ``initializing``.
        """
        builder = PodmanCliBuilder(cli_defaults)
        if workspace:
            builder.with_workspace(workspace)

        self.module = module
        self.cli = CliModuleRunner(builder)
        self.run_ctx = run_ctx
        self.exec_order: Tuple[State, ...] = DEFAULT_ORDER
        self.current = State.INVALID
        self.previous: Optional[State] = None
        self.state_resolver = state_resolver or default_state_resolver
        self.cmds: Dict[State, StateCmd] = {}

        self.hooks = HookRegistry(self.cli, run_ctx)
        self.hooks.add_all(module.spec.hooks)

        self.add_cmd(State.INVALID, advance_to(State.INITIALIZING))
        self.add_cmd(State.INITIALIZING, self.resolve_state)
        self.add_cmd(State.CONFIGURED, advance_to(State.VALIDATED))
        self.add_cmd(State.VALIDATED, advance_to(State.PRE_DEPLOYING))
        self.add_cmd(State.PRE_DEPLOYING, self.pre_deploy)
        self.add_cmd(State.PRE_DEPLOYED, advance_to(State.DEPLOYING))
        self.add_cmd(State.DEPLOYING, self.deploy)
        self.add_cmd(State.DEPLOYED, advance_to(State.POST_DEPLOYING))
        self.add_cmd(State.POST_DEPLOYING, self.post_deploy)

    @property
    def state(self) -> State:
        return self.current

    @property
    def previous_state(self) -> Optional[State]:
        return self.previous

    def notify(self, state: State):
        self.previous = self.current
        self.current = State(state)

    def notify_err(self, state: State, error: Exception):
        """
        Records ``error`` on the module's run context and moves to ``state``.
        """
        self.run_ctx.add_error(error)
        self.notify(state)

    def add_cmd(self, state: State, handler: StateCmd):
        """
        Registers the handler for a state.

        :raises HandlerExistsError: If the state already has a handler.
        """
        state = State(state)
        self.run_ctx.log.debug("adding_command", state=str(state))
        if state in self.cmds:
            raise HandlerExistsError(state)
        self.cmds[state] = handler

    def get_cmd_for(self, state: State) -> Optional[StateCmd]:
        self.run_ctx.log.debug("getting_command", state=str(state))
        return self.cmds.get(State(state))

    def get_hook(self, name: Hook) -> HookCmd:
        """
        Returns the command for a hook. Calling it does not change the lifecycle state.

        :raises KeyError: For unknown hooks.
        """
        return self.hooks.get(name)

    def run_hook(self, name: Hook, ctx: Optional[RunContext] = None):
        self.hooks.run(name, ctx)

    def next_step(self) -> Tuple[StateCmd, bool]:
        """
        Looks up the handler for the current state.

        :return: The handler and whether it is a real step. Terminal states
            return ``done_handler`` and False.
        """
        if self.current.is_terminal:
            return done_handler, False

        if self.current in self.exec_order:
            cmd = self.get_cmd_for(self.current)
            if cmd is not None:
                return cmd, True
        return noop_handler, False

    def itr(self) -> Callable[[], Tuple[StateCmd, bool]]:
        return self.next_step

    def __iter__(self) -> Iterator[StateCmd]:
        """
        Yields handlers until the lifecycle is done or errored.

        Each yielded handler must be called before asking for the next one,
        since the handler is what advances the state.
        """
        while True:
            step, has_more = self.next_step()
            if not has_more:
                return
            yield step

    def is_errored(self) -> bool:
        return self.current == State.ERRORED

    def resolve_state(self, ctx: RunContext, notifier: Notifier):
        notifier.notify(self.state_resolver(self, ctx))

    def _run_stage(self, ctx: RunContext, notifier: Notifier,
                   running: State, finished: State, info: ImageInfo):
        notifier.notify(running)
        try:
            self.cli.run_image(ctx, info)
        except PodmodError:
            notifier.notify(State.ERRORED)
            raise
        notifier.notify(finished)

    def pre_deploy(self, ctx: RunContext, notifier: Notifier):
        lifecycle = self.module.spec.lifecycle
        self._run_stage(ctx, notifier, State.PRE_DEPLOYING, State.PRE_DEPLOYED, lifecycle.pre_deploy)

    def deploy(self, ctx: RunContext, notifier: Notifier):
        lifecycle = self.module.spec.lifecycle
        self._run_stage(ctx, notifier, State.DEPLOYING, State.DEPLOYED, lifecycle.deploy)

    def post_deploy(self, ctx: RunContext, notifier: Notifier):
        lifecycle = self.module.spec.lifecycle
        self._run_stage(ctx, notifier, State.POST_DEPLOYING, State.POST_DEPLOYED, lifecycle.post_deploy)
