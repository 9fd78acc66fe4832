"""
Jinja2 rendering of workflow templates.
"""
import logging
from typing import Optional

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
)

from workflow_factory.models.schemas import RenderContext
from workflow_factory.services.workflow_sync.errors import TemplateError

logger = logging.getLogger(__name__)


class TemplateRenderer:
    """Renders a named template from templates_dir against a RenderContext"""

    def __init__(self, templates_dir: str, env: Optional[Environment] = None):
        self.templates_dir = templates_dir
        # YAML output; escaping HTML would corrupt it
        self.env = env or Environment(
            loader=FileSystemLoader(templates_dir),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render(self, template_name: str, context: RenderContext) -> bytes:
        try:
            template = self.env.get_template(template_name)
            text = template.render(**context.variables())
        except TemplateNotFound as e:
            raise TemplateError(
                f"Template '{template_name}' not found in {self.templates_dir}",
                path=template_name,
                operation="render",
                cause=e,
            ) from e
        except TemplateSyntaxError as e:
            raise TemplateError(
                f"Template '{template_name}' failed to compile at line {e.lineno}",
                path=template_name,
                operation="render",
                cause=e,
            ) from e
        except UndefinedError as e:
            raise TemplateError(
                f"Template '{template_name}' references an undefined variable",
                path=template_name,
                operation="render",
                cause=e,
            ) from e

        logger.debug(f"Rendered {template_name} for module {context.module_name}")
        return text.encode("utf-8")
