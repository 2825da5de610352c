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
Execution of container runtime commands with stdio wired to a run context.
"""
import io
import subprocess
from typing import IO, List, Optional, Tuple, Union
from ..BUILDERS.cli_builder import PodmanCliBuilder
from ..MODELS.module_manifest import ImageInfo
from ..errors import ProcessExecutionError, UnsupportedFeatureError
from .run_context import RunContext

StdioTarget = Union[int, IO, None]


def _has_fileno(stream: IO) -> bool:
    try:
        stream.fileno()
    except (AttributeError, OSError, io.UnsupportedOperation):
        return False
    return True


def _stdin_for(stream: Optional[IO]) -> Tuple[StdioTarget, Optional[bytes]]:
    """
    Resolves the child's stdin and any data that has to be fed through a pipe.
    """
    if stream is None:
        return subprocess.DEVNULL, None
    if _has_fileno(stream):
        return stream, None
    data = stream.read()
    if isinstance(data, str):
        data = data.encode()
    return subprocess.PIPE, data


def _output_for(stream: Optional[IO]) -> StdioTarget:
    if stream is None:
        return subprocess.DEVNULL
    if _has_fileno(stream):
        stream.flush()
        return stream
    return subprocess.PIPE


def _copy_to(stream: Optional[IO], data: Optional[bytes], log):
    """
    Writes captured child output to an in-memory stream.

    Binary streams receive the bytes unchanged. Text streams receive the
    output decoded as UTF-8; bytes that do not decode are replaced with
    U+FFFD and an ``undecodable_output`` warning is logged. Use a binary
    stream when the output must be kept byte for byte.
    """
    if stream is None or not data:
        return
    if isinstance(stream, io.TextIOBase):
        try:
            text = data.decode()
        except UnicodeDecodeError as e:
            log.warning("undecodable_output", position=e.start, size=len(data))
            text = data.decode(errors="replace")
        stream.write(text)
    else:
        stream.write(data)


class CliModuleRunner:
    """
    Runs module containers through the container runtime command line.

    Failures are recorded on the run context and raised to the caller.
    """
    def __init__(self, builder: Optional[PodmanCliBuilder] = None):
        """
        :param builder: The command builder; a default one is created if omitted.
        """
        self.builder = builder or PodmanCliBuilder()

    def split_command(self, cmd: str) -> List[str]:
        """
        Splits a command line on whitespace. Quoting is not interpreted.
        """
        return cmd.split()

    def _run_cmd(self, ctx: RunContext, cmd: str):
        """
        Spawns the command and waits for it to finish.

        :param ctx: Run context providing the streams and collecting errors.
        :param cmd: The rendered command line.
        :raises ProcessExecutionError: If the command cannot start or exits non-zero.
        """
        ctx.log.info("running_command", command=cmd)
        args = self.split_command(cmd)
        stdin, stdin_data = _stdin_for(ctx.input)
        stdout = _output_for(ctx.out)
        stderr = _output_for(ctx.err)

        # Immediately before we run, we reset the context
        ctx.reset()
        try:
            process = subprocess.Popen(
                args,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                shell=False,
            )
        except (OSError, ValueError) as e:
            # ValueError: arguments Popen refuses, such as an embedded NUL byte
            error = ProcessExecutionError(cmd, None, str(e))
            ctx.add_error(error)
            ctx.log.error("command_failed", command=cmd, error=str(e))
            raise error from e

        out_data, err_data = process.communicate(input=stdin_data)
        _copy_to(ctx.out, out_data, ctx.log)
        _copy_to(ctx.err, err_data, ctx.log)

        if process.returncode != 0:
            ctx.set_last_err_code(process.returncode)
            error = ProcessExecutionError(cmd, process.returncode)
            ctx.add_error(error)
            ctx.log.error("command_failed", command=cmd, exit_code=process.returncode)
            raise error

    def run_image(self, ctx: RunContext, info: ImageInfo):
        """
        Runs the container described by an image descriptor.

        :param ctx: The run context.
        :param info: The image descriptor to render.
        :raises UnsupportedFeatureError: If the descriptor cannot be rendered.
        :raises ProcessExecutionError: If the container fails.
        """
        try:
            cmd = self.builder.build_from(info)
        except UnsupportedFeatureError as e:
            ctx.add_error(e)
            ctx.log.error("command_build_failed", image=info.image, error=str(e))
            raise
        self._run_cmd(ctx, cmd)

    def run(self, ctx: RunContext):
        """
        Runs whatever the builder is currently configured to produce.
        """
        self._run_cmd(ctx, self.builder.build())
