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
Models for the install manifest that describes a deployable module.
"""
from typing import Annotated, Any, List, Dict
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from ..errors import InvalidApiVersionError

API_VERSION_SEPARATOR = "/"
API_NAME = "itzcli"
API_VERSION_V1ALPHA1 = "v1alpha1"
INSTALL_KIND = "InstallManifest"

SUPPORTED_API_VERSIONS = [API_VERSION_V1ALPHA1]


def scalar_to_str(value: Any) -> Any:
    """
    Reads a YAML scalar as text, so ``8080``, ``1.5`` and ``true`` load as strings.

    Booleans use their YAML spelling and an empty value becomes an empty
    string. Lists and mappings are passed through for pydantic to reject.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


ScalarStr = Annotated[str, BeforeValidator(scalar_to_str)]


class ManifestModel(BaseModel):
    """
    Base for manifest models: frozen once loaded, accepts YAML keys or field names.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class EnvVarInfo(ManifestModel):
    """
    A single environment variable passed to a container.
    """
    name: ScalarStr
    value: ScalarStr = ""

    def __str__(self) -> str:
        return f"{self.name}={self.value}"


class VolumeInfo(ManifestModel):
    """
    Maps a host path (``name``) onto a path inside the container.
    """
    name: ScalarStr
    mount_path: ScalarStr = Field(alias="mountPath")


class ImageInfo(ManifestModel):
    """
    The container image that implements one stage or hook, with its invocation parameters.
    """
    image: ScalarStr = ""
    script: ScalarStr = ""
    command: List[ScalarStr] = []
    args: List[ScalarStr] = []
    env_vars: List[EnvVarInfo] = Field(default=[], alias="env")
    volumes: List[VolumeInfo] = Field(default=[], alias="volumeMounts")


class HookInfo(ManifestModel):
    """
    Informational hooks. They can run at any time without touching lifecycle state.
    """
    list_hook: ImageInfo = Field(default_factory=ImageInfo, alias="list")
    validate_hook: ImageInfo = Field(default_factory=ImageInfo, alias="validate")
    get_state: ImageInfo = Field(default_factory=ImageInfo)


class LifecycleInfo(ManifestModel):
    """
    The ordered lifecycle stages.
    """
    pre_deploy: ImageInfo = Field(default_factory=ImageInfo)
    deploy: ImageInfo = Field(default_factory=ImageInfo)
    post_deploy: ImageInfo = Field(default_factory=ImageInfo)


class MetadataInfo(ManifestModel):
    name: ScalarStr = ""
    namespace: ScalarStr = ""
    labels: Dict[ScalarStr, ScalarStr] = {}


class SpecInfo(ManifestModel):
    hooks: HookInfo = Field(default_factory=HookInfo)
    lifecycle: LifecycleInfo = Field(default_factory=LifecycleInfo)


class ApiVersion(BaseModel):
    """
    A parsed ``namespace/version`` apiVersion value.
    """
    namespace: str
    version: str

    @classmethod
    def parse(cls, value: str) -> "ApiVersion":
        """
        Parses an apiVersion string.

        :param value: The raw value, e.g. ``itzcli/v1alpha1``.
        :return: The parsed version.
        :raises InvalidApiVersionError: If the value is not exactly two parts.
        """
        parts = value.split(API_VERSION_SEPARATOR)
        if len(parts) != 2:
            raise InvalidApiVersionError(f"invalid apiVersion format: {value}")
        return cls(namespace=parts[0], version=parts[1])

    def __str__(self) -> str:
        return f"{self.namespace}{API_VERSION_SEPARATOR}{self.version}"


class ModuleInfo(ManifestModel):
    """
    The full module descriptor loaded from an install manifest.
    """
    api_version: ScalarStr = Field(default="", alias="apiVersion")
    kind: ScalarStr = ""
    metadata: MetadataInfo = Field(default_factory=MetadataInfo)
    spec: SpecInfo = Field(default_factory=SpecInfo)

    def is_supported_kind(self) -> bool:
        return self.kind == INSTALL_KIND

    def is_supported_version(self) -> bool:
        """
        Checks the apiVersion namespace and version against the supported set.

        :return: False for malformed or unknown versions.
        """
        try:
            ver = ApiVersion.parse(self.api_version)
        except InvalidApiVersionError:
            return False
        if ver.namespace != API_NAME:
            return False
        return ver.version in SUPPORTED_API_VERSIONS

    def is_supported(self) -> bool:
        return self.is_supported_kind() and self.is_supported_version()
