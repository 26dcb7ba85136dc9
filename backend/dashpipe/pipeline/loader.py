"""
Pipeline configuration loader.

Turns a YAML workflow file into a validated PipelineConfig:

    1. `${{ expr }}` placeholders are rewritten to `{{ expr }}` and the
       text is rendered with Jinja2 against `{"env": <environment>}`,
       so `${{ env.API_TOKEN }}` expands to the variable's value.
       Undefined variables render as empty strings.
    2. The rendered text is parsed with PyYAML (safe_load).
    3. The document is validated by the pydantic Step model.

Every failure along the way is a ConfigError, raised before any step runs.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Mapping

import jinja2
import yaml
from pydantic import ValidationError

from dashpipe.core.logging import get_logger
from dashpipe.pipeline.errors import ConfigError
from dashpipe.pipeline.step import PipelineConfig

logger = get_logger(__name__)

_PLACEHOLDER = re.compile(r"\$\{\{(.*?)\}\}")

_jinja = jinja2.Environment(
    autoescape=False,
    keep_trailing_newline=True,
)


def render_config(text: str, environ: Mapping[str, str] | None = None) -> str:
    """Expand `${{ ... }}` placeholders against the environment."""
    environ = dict(os.environ if environ is None else environ)
    source = _PLACEHOLDER.sub(r"{{\1}}", text)

    try:
        template = _jinja.from_string(source)
        return template.render(env=environ)
    except jinja2.TemplateError as exc:
        raise ConfigError(f"Config template error: {exc}") from exc


def _format_validation_error(exc: ValidationError) -> str:
    lines = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        lines.append(f"{location}: {err['msg']}")
    return "; ".join(lines)


def parse_config(text: str, environ: Mapping[str, str] | None = None) -> PipelineConfig:
    """
    Render, parse and validate a workflow document.

    Raises:
        ConfigError: On template, YAML or schema errors.
    """
    rendered = render_config(text, environ)

    try:
        document = yaml.safe_load(rendered)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config is not valid YAML: {exc}") from exc

    if not isinstance(document, dict):
        raise ConfigError(
            f"Config root must be a mapping, got {type(document).__name__}"
        )

    try:
        config = PipelineConfig.model_validate(document)
    except ValidationError as exc:
        raise ConfigError(
            f"Config was not well-formed: {_format_validation_error(exc)}",
            details={"errors": exc.errors(include_url=False)},
        ) from exc

    logger.debug("Config parsed", steps=len(config.steps))
    return config


def load_config(path: str | os.PathLike, environ: Mapping[str, str] | None = None) -> PipelineConfig:
    """
    Read and parse the workflow file at `path`.

    Raises:
        ConfigError: If the file cannot be read or its content is invalid.
    """
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Unable to read config file '{config_path}': {exc.strerror or exc}"
        ) from exc

    logger.info("Loading pipeline config", path=str(config_path))
    return parse_config(text, environ)
