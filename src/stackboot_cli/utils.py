"""CLI utility functions."""

import json
from importlib.resources import files
from pathlib import Path
from typing import Any

import yaml

from .bootstrap.errors import TemplateError

DEFAULT_TEMPLATE_RESOURCE = "templates/bootstrap-template.yaml"


class TemplateLoader(yaml.SafeLoader):
    """YAML loader that understands CloudFormation short-form intrinsics (!Ref, !Sub, ...)."""


def _construct_intrinsic(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)

    if tag_suffix in ("Ref", "Condition"):
        return {tag_suffix: value}
    if tag_suffix == "GetAtt" and isinstance(value, str):
        value = value.split(".", 1)
    return {f"Fn::{tag_suffix}": value}


TemplateLoader.add_multi_constructor("!", _construct_intrinsic)


def parse_template(text: str, source: str = "<template>") -> dict[str, Any]:
    """Parse a JSON or YAML template document.

    Raises:
        TemplateError: If the text is not a mapping document.
    """
    try:
        document = yaml.load(text, Loader=TemplateLoader)
    except yaml.YAMLError as e:
        raise TemplateError(
            message=f"Could not parse template {source}: {e}",
            data={"source": source},
        ) from e

    if not isinstance(document, dict):
        raise TemplateError(
            message=f"Template {source} must be a mapping, got {type(document).__name__}",
            data={"source": source},
        )
    return document


def load_template(template_file: str | None) -> dict[str, Any]:
    """Load a template from a file, or the bundled bootstrap template.

    Args:
        template_file: Path to a .json/.yaml/.yml template, or None.

    Returns:
        Template document.
    """
    if template_file is None:
        resource = files("stackboot_cli.bootstrap").joinpath(DEFAULT_TEMPLATE_RESOURCE)
        return parse_template(resource.read_text(), source="(bundled)")

    file_path = Path(template_file)
    try:
        text = file_path.read_text()
    except OSError as e:
        raise TemplateError(
            message=f"Could not read template {file_path}: {e.strerror or e}",
            data={"source": str(file_path)},
        ) from e

    if file_path.suffix == ".json":
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise TemplateError(
                message=f"Could not parse template {file_path}: {e}",
                data={"source": str(file_path)},
            ) from e
        if not isinstance(document, dict):
            raise TemplateError(
                message=f"Template {file_path} must be a mapping",
                data={"source": str(file_path)},
            )
        return document

    return parse_template(text, source=str(file_path))


def parse_key_values(
    pairs: tuple[str, ...],
    allow_missing_value: bool = False,
) -> dict[str, str | None]:
    """Parse KEY=VALUE flags.

    Args:
        pairs: Tuple of KEY=VALUE strings
        allow_missing_value: Accept a bare KEY, mapped to None

    Returns:
        Dictionary of parsed values (later flags win)
    """
    values: dict[str, str | None] = {}

    for pair in pairs:
        if "=" not in pair:
            if allow_missing_value and pair:
                values[pair] = None
                continue
            raise ValueError(f"Invalid format: {pair}. Expected KEY=VALUE")

        key, value = pair.split("=", 1)
        if not key:
            raise ValueError(f"Invalid format: {pair}. Key must not be empty")
        values[key] = value

    return values
