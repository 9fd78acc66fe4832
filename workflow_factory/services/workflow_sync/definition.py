"""
Pipeline definition parsing.

A definition file arrives base64 encoded from the contents API and holds a YAML
document shaped like::

    template:
      type: openshift
      spec:
        stages:
          pullCode:
            spec:
              gitlab:
                projectId: org/checkout
                branch: main
"""
import base64
import binascii
import posixpath

import yaml

from workflow_factory.models.schemas import PipelineDescriptor
from workflow_factory.services.workflow_sync.errors import MalformedDefinitionError


def module_name_for(path: str, dev_suffix: str = "factory-dev.yaml") -> str:
    """Module name is the file name without the dev suffix and its separator"""
    base = posixpath.basename(path)
    if base.endswith(dev_suffix):
        base = base[: -len(dev_suffix)]
    name = base.rstrip(".-_")
    if not name:
        # bare "factory-dev.yaml": fall back to the directory holding it
        name = posixpath.basename(posixpath.dirname(path))
    return name


def decode_content(raw: str, path: str) -> str:
    """Undo the contents-API transport encoding"""
    try:
        return base64.b64decode(raw).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise MalformedDefinitionError(
            "Definition content is not valid base64 utf-8 text",
            path=path,
            operation="decode",
            cause=e,
        ) from e


def parse_definition(raw: str, path: str, dev_suffix: str = "factory-dev.yaml") -> PipelineDescriptor:
    """Decode and parse one dev definition file"""
    text = decode_content(raw, path)
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedDefinitionError("Definition is not valid YAML", path=path, operation="parse", cause=e) from e

    template = document.get("template") if isinstance(document, dict) else None
    if not isinstance(template, dict):
        raise MalformedDefinitionError("Missing 'template' mapping", path=path, operation="parse")

    template_kind = template.get("type")
    if not isinstance(template_kind, str) or not template_kind:
        raise MalformedDefinitionError("Missing 'template.type'", path=path, operation="parse")

    spec = template.get("spec")
    stages = spec.get("stages") if isinstance(spec, dict) else None
    if not isinstance(stages, dict):
        raise MalformedDefinitionError("Missing 'template.spec.stages' mapping", path=path, operation="parse")

    return PipelineDescriptor(
        template_kind=template_kind,
        module_name=module_name_for(path, dev_suffix),
        path=path,
        stage_graph=stages,
    )
