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
Builds container runtime command lines from structured parameters.

Rendered token order is fixed and other tools compare it byte for byte:

    <path> <cmd> [flags] [--uidmap c:h:n]... [-v host:ctr[:opt]]...
        [-p host:ctr]... [-e NAME=VALUE]... [image]

Values are not shell-escaped. A value containing spaces is split into
several arguments when the line is executed.
"""
import copy
from dataclasses import dataclass, field
from typing import List, Dict, Optional
from jinja2 import Template
from ..MODELS.module_manifest import EnvVarInfo, ImageInfo
from ..errors import UnsupportedFeatureError

DEFAULT_PODMAN_PATH = "/usr/local/bin/podman"
DEFAULT_SUBCOMMAND = "run"
DEFAULT_WORKDIR = "/workspace"
DEFAULT_FLAGS: List[str] = []

CLI_TEMPLATE = Template(
    "{{ path }} {{ cmd }}"
    "{% for flag in flags %} {{ flag }}{% endfor %}"
    "{% for uid_map in uid_maps %} --uidmap {{ uid_map }}{% endfor %}"
    "{% for volume_map in volume_maps %} -v {{ volume_map }}{% endfor %}"
    "{% for host, container in ports.items() %} -p {{ host }}:{{ container }}{% endfor %}"
    "{% for envvar in envvars %} -e {{ envvar }}{% endfor %}"
    "{% if image %} {{ image }}{% endif %}"
)


def iif(value: Optional[str], or_value: str) -> str:
    """
    Returns ``value`` unless it is empty or whitespace, else ``or_value``.
    """
    if value is None or not value.strip():
        return or_value
    return value


@dataclass
class CliParts:
    """
    The parts of a container runtime command line.
    """
    path: str = ""
    cmd: str = ""
    image: str = ""
    flags: List[str] = field(default_factory=list)
    workdir: str = ""
    volume_maps: List[str] = field(default_factory=list)
    # host port -> container port, in insertion order
    ports: Dict[str, str] = field(default_factory=dict)
    uid_maps: List[str] = field(default_factory=list)
    envvars: List[EnvVarInfo] = field(default_factory=list)


class PodmanCliBuilder:
    """
    Fluent builder for ``podman``-style command lines.

    Every ``with_*`` method returns the builder so calls can be chained.
    ``build`` only reads the collected parts; calling it twice yields the
    same string.
    """
    def __init__(self, defaults: Optional[CliParts] = None):
        """
        Initializes the builder, filling unset values with defaults.

        :param defaults: Optional starting parts. Path, subcommand, workspace
            path, flags and environment variables are inherited from it.
        """
        defaults = defaults or CliParts()
        self.parts = CliParts(
            path=iif(defaults.path, DEFAULT_PODMAN_PATH),
            cmd=iif(defaults.cmd, DEFAULT_SUBCOMMAND),
            workdir=iif(defaults.workdir, DEFAULT_WORKDIR),
            flags=list(defaults.flags) + list(DEFAULT_FLAGS),
            envvars=list(defaults.envvars),
        )

    def with_path(self, path: str) -> "PodmanCliBuilder":
        """Overrides the runtime executable path."""
        self.parts.path = path
        return self

    def with_cmd(self, cmd: str) -> "PodmanCliBuilder":
        self.parts.cmd = cmd
        return self

    def with_flags(self, *flags: str) -> "PodmanCliBuilder":
        """Appends flags after any inherited ones."""
        self.parts.flags.extend(flags)
        return self

    def with_image(self, image_name: str) -> "PodmanCliBuilder":
        self.parts.image = image_name
        return self

    def with_workspace(self, localdir: str) -> "PodmanCliBuilder":
        """
        Maps a local directory onto the container workspace path.
        """
        return self.with_volume(localdir, self.parts.workdir)

    def with_volume(self, localdir: str, containerdir: str) -> "PodmanCliBuilder":
        return self.with_volume_opt(localdir, containerdir, "")

    def with_volume_opt(self, localdir: str, containerdir: str, option: str) -> "PodmanCliBuilder":
        """
        Adds a volume mapping with a mount option such as ``Z`` for SELinux relabelling.

        :param localdir: Host path.
        :param containerdir: Path inside the container.
        :param option: Mount option; left off when empty.
        """
        if option:
            vol_map = f"{localdir}:{containerdir}:{option}"
        else:
            vol_map = f"{localdir}:{containerdir}"
        self.parts.volume_maps.append(vol_map)
        return self

    def with_user_map(self, local_user: int, container_user: int, number: int) -> "PodmanCliBuilder":
        """
        Adds a ``--uidmap container:host:count`` mapping.
        """
        self.parts.uid_maps.append(f"{container_user}:{local_user}:{number}")
        return self

    def with_port(self, localport: str, containerport: str) -> "PodmanCliBuilder":
        """
        Publishes a port. Setting the same local port again replaces the container port.
        """
        self.parts.ports[str(localport)] = str(containerport)
        return self

    def with_envvar(self, name: str, value: str) -> "PodmanCliBuilder":
        """
        Adds ``-e NAME=VALUE``. Duplicate names are rendered as many times as added.
        """
        self.parts.envvars.append(EnvVarInfo(name=name, value=value))
        return self

    def copy(self) -> "PodmanCliBuilder":
        """
        Returns an independent builder with the same parts.
        """
        clone = PodmanCliBuilder.__new__(PodmanCliBuilder)
        clone.parts = copy.deepcopy(self.parts)
        return clone

    def build(self) -> str:
        """
        Renders the command line.

        :return: The command line with tokens joined by single spaces.
        """
        parts = self.parts
        rendered = CLI_TEMPLATE.render(
            path=parts.path,
            cmd=parts.cmd,
            flags=parts.flags,
            uid_maps=parts.uid_maps,
            volume_maps=parts.volume_maps,
            ports=parts.ports,
            envvars=parts.envvars,
            image=parts.image,
        )
        return rendered.strip()

    def build_from(self, info: ImageInfo) -> str:
        """
        Renders the command line for an image descriptor.

        The descriptor's image, environment and volumes are applied to a copy,
        so this builder keeps only what was configured on it directly.

        :param info: The image descriptor.
        :return: The rendered command line.
        :raises UnsupportedFeatureError: If the descriptor overrides the command.
        """
        # TODO: render info.command once the runtime entrypoint override is wired up
        if info.command:
            raise UnsupportedFeatureError("command is not yet supported")

        builder = self.copy().with_image(info.image)
        for envvar in info.env_vars:
            builder.with_envvar(envvar.name, envvar.value)
        for volume in info.volumes:
            builder.with_volume(volume.name, volume.mount_path)
        return builder.build()
