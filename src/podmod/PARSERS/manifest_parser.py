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
Parsers for module install manifest YAML files.
"""
import yaml
import structlog
from ..MODELS.module_manifest import ModuleInfo
from ..errors import UnsupportedManifestError

logger = structlog.get_logger()


class ManifestParser:
    """
    Parser for install manifests (``kind: InstallManifest``).
    """
    def __init__(self, strict: bool = False):
        """
        By default an unsupported apiVersion or kind still loads; the module
        is returned and ``is_supported()`` reports False.

        :param strict: Raise for unsupported apiVersion or kind instead of only warning.
        """
        self.strict = strict

    def parse(self, manifest_path: str) -> ModuleInfo:
        """
        Parses a manifest from a path.

        :param manifest_path: Path to the manifest file.
        :return: The module descriptor.
        """
        logger.debug("loading_manifest", path=manifest_path)
        with open(manifest_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> ModuleInfo:
        """
        Parses a manifest from a string.

        :param content: YAML content of the manifest.
        :return: The module descriptor.
        :raises UnsupportedManifestError: In strict mode, when the apiVersion or kind is not supported.
        """
        data = yaml.safe_load(content)
        if not data:
            data = {}

        module = ModuleInfo.model_validate(data)
        if not module.is_supported():
            reasons = []
            if not module.is_supported_version():
                reasons.append(f"unsupported apiVersion {module.api_version!r}")
            if not module.is_supported_kind():
                reasons.append(f"unsupported kind {module.kind!r}")
            if self.strict:
                raise UnsupportedManifestError(module, reasons)
            logger.warning("unsupported_manifest", api_version=module.api_version,
                           kind=module.kind, reasons=reasons)
        return module
