"""Runtime options resolved from properties, the environment and ``.env`` files.

Properties use the ``cucumber.*`` key names. A ``cucumber.options``
property holds a command-line style option string that is parsed first;
the remaining properties are then applied on top of it.

Environment variables map to property keys by upper-casing and replacing
``.`` and ``-`` with ``_``, e.g. ``CUCUMBER_EXECUTION_STRICT``.
"""

from __future__ import annotations

import importlib
import logging
import os
import re
import shlex
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import click
from click.core import ParameterSource
from dotenv import load_dotenv

from scenario_verdict.errors import OptionsError

logger = logging.getLogger(__name__)

T = TypeVar("T")

OPTIONS_PROPERTY_NAME = "cucumber.options"
ANSI_COLORS_DISABLED_PROPERTY_NAME = "cucumber.ansi-colors.disabled"
EXECUTION_DRY_RUN_PROPERTY_NAME = "cucumber.execution.dry-run"
EXECUTION_LIMIT_PROPERTY_NAME = "cucumber.execution.limit"
EXECUTION_ORDER_PROPERTY_NAME = "cucumber.execution.order"
EXECUTION_STRICT_PROPERTY_NAME = "cucumber.execution.strict"
WIP_PROPERTY_NAME = "cucumber.execution.wip"
FEATURES_PROPERTY_NAME = "cucumber.features"
FILTER_NAME_PROPERTY_NAME = "cucumber.filter.name"
FILTER_TAGS_PROPERTY_NAME = "cucumber.filter.tags"
GLUE_PROPERTY_NAME = "cucumber.glue"
GLUE_CLASSES_PROPERTY_NAME = "cucumber.glue.classes"
OBJECT_FACTORY_PROPERTY_NAME = "cucumber.object-factory"
PLUGIN_PROPERTY_NAME = "cucumber.plugin"
SNIPPET_TYPE_PROPERTY_NAME = "cucumber.snippet-type"

PROPERTY_NAMES = (
    OPTIONS_PROPERTY_NAME,
    ANSI_COLORS_DISABLED_PROPERTY_NAME,
    EXECUTION_DRY_RUN_PROPERTY_NAME,
    EXECUTION_LIMIT_PROPERTY_NAME,
    EXECUTION_ORDER_PROPERTY_NAME,
    EXECUTION_STRICT_PROPERTY_NAME,
    WIP_PROPERTY_NAME,
    FEATURES_PROPERTY_NAME,
    FILTER_NAME_PROPERTY_NAME,
    FILTER_TAGS_PROPERTY_NAME,
    GLUE_PROPERTY_NAME,
    GLUE_CLASSES_PROPERTY_NAME,
    OBJECT_FACTORY_PROPERTY_NAME,
    PLUGIN_PROPERTY_NAME,
    SNIPPET_TYPE_PROPERTY_NAME,
)

SNIPPET_TYPES = ("underscore", "camelcase")

_ORDER_PATTERN = re.compile(r"^(lexical|reverse|random)(?::(-?\d+))?$")
_MODULE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


@dataclass(frozen=True)
class FeatureWithLines:
    """A feature path, optionally narrowed to specific lines."""

    path: str
    lines: tuple[int, ...] = ()

    @classmethod
    def parse(cls, value: str) -> FeatureWithLines:
        """Parse ``path[:line[:line...]]``."""
        parts = value.strip().split(":")
        lines: list[int] = []
        while len(parts) > 1 and parts[-1].isdigit():
            lines.insert(0, int(parts.pop()))
        path = ":".join(parts)
        if not path:
            raise ValueError(f"Missing feature path in {value!r}")
        return cls(path=path, lines=tuple(lines))

    def __str__(self) -> str:
        return ":".join([self.path, *(str(n) for n in self.lines)])


@dataclass(frozen=True)
class PickleOrder:
    """Order in which scenarios are executed."""

    kind: str = "lexical"
    seed: int | None = None

    @classmethod
    def parse(cls, value: str) -> PickleOrder:
        match = _ORDER_PATTERN.match(value.strip())
        if match is None:
            raise ValueError(f"Unknown execution order: {value!r}")
        kind, seed = match.groups()
        if seed is not None and kind != "random":
            raise ValueError(f"Only random order accepts a seed: {value!r}")
        return cls(kind=kind, seed=int(seed) if seed is not None else None)

    def __str__(self) -> str:
        return self.kind if self.seed is None else f"{self.kind}:{self.seed}"


@dataclass
class RuntimeOptions:
    """Structured configuration for a run.

    Only ``strict`` is consumed by :class:`~scenario_verdict.aggregator.ResultAggregator`;
    the rest is resolved so that hosts share one configuration source.
    """

    strict: bool = False
    dry_run: bool = False
    monochrome: bool = False
    wip: bool = False
    limit: int | None = None
    order: PickleOrder = field(default_factory=PickleOrder)
    features: list[FeatureWithLines] = field(default_factory=list)
    reruns: list[FeatureWithLines] = field(default_factory=list)
    name_filters: list[re.Pattern[str]] = field(default_factory=list)
    tag_filters: list[str] = field(default_factory=list)
    glue: list[str] = field(default_factory=list)
    glue_classes: list[Any] = field(default_factory=list)
    object_factory: Any = None
    plugins: list[tuple[str, bool]] = field(default_factory=list)
    snippet_type: str = "underscore"

    def to_dict(self) -> dict[str, Any]:
        """Return a display-friendly view of the options."""
        return {
            "strict": self.strict,
            "dry_run": self.dry_run,
            "monochrome": self.monochrome,
            "wip": self.wip,
            "limit": self.limit,
            "order": str(self.order),
            "features": [str(f) for f in self.features],
            "reruns": [str(f) for f in self.reruns],
            "name_filters": [p.pattern for p in self.name_filters],
            "tag_filters": list(self.tag_filters),
            "glue": list(self.glue),
            "glue_classes": [_qualified_name(c) for c in self.glue_classes],
            "object_factory": _qualified_name(self.object_factory)
            if self.object_factory is not None
            else None,
            "plugins": [name for name, _ in self.plugins],
            "snippet_type": self.snippet_type,
        }


def parse_boolean(value: str) -> bool:
    """Only a case-insensitive ``"true"`` is true."""
    return value.lower() == "true"


def parse_glue(value: str) -> str:
    """Validate a glue entry: a dotted module name or a directory path."""
    value = value.strip()
    if "/" in value or "\\" in value:
        return Path(value).as_posix()
    if not _MODULE_PATTERN.match(value):
        raise ValueError(f"Invalid glue module: {value!r}")
    return value


def parse_snippet_type(value: str) -> str:
    value = value.strip().lower()
    if value not in SNIPPET_TYPES:
        raise ValueError(f"Unknown snippet type: {value!r}")
    return value


def import_object(name: str) -> Any:
    """Import ``package.module:attr`` or ``package.module.attr``."""
    module_name, sep, attr = name.partition(":")
    if not sep:
        module_name, _, attr = name.rpartition(".")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError, ValueError) as exc:
        raise OptionsError(f"Could not load the provided glue class:'{name}'") from exc


def read_rerun_file(path: str | Path) -> list[FeatureWithLines]:
    """Read a rerun file of whitespace separated ``path:line`` entries."""
    text = Path(path).read_text(encoding="utf-8")
    return [FeatureWithLines.parse(token) for token in text.split()]


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _qualified_name(obj: Any) -> str:
    module = getattr(obj, "__module__", None)
    name = getattr(obj, "__qualname__", None) or repr(obj)
    return f"{module}.{name}" if module else name


def _parse_all(
    properties: Mapping[str, str],
    name: str,
    parser: Callable[[str], Iterable[T]],
    setter: Callable[[T], None],
) -> None:
    value = properties.get(name)
    if not value:
        return
    try:
        parsed = list(parser(value))
    except Exception as exc:
        raise OptionsError(f"Failed to parse '{name}' with value '{value}'") from exc
    for item in parsed:
        setter(item)


def _parse(
    properties: Mapping[str, str],
    name: str,
    parser: Callable[[str], T],
    setter: Callable[[T], None],
) -> None:
    _parse_all(properties, name, lambda value: [parser(value)], setter)


@click.command(name=OPTIONS_PROPERTY_NAME, add_help_option=False)
@click.option("--strict/--no-strict", default=False)
@click.option("--dry-run", "-d", is_flag=True)
@click.option("--monochrome", "-m", is_flag=True)
@click.option("--wip", "-w", is_flag=True)
@click.option("--limit", type=int)
@click.option("--order")
@click.option("--glue", "-g", multiple=True)
@click.option("--tags", "-t", multiple=True)
@click.option("--name", "-n", multiple=True)
@click.option("--plugin", "-p", multiple=True)
@click.option("--snippets")
@click.option("--object-factory")
@click.argument("features", nargs=-1)
def _option_string_command(**kwargs: Any) -> None:
    """Grammar for the ``cucumber.options`` option string."""


def parse_option_string(option_string: str) -> RuntimeOptions:
    """Parse a command-line style option string into options."""
    try:
        args = shlex.split(option_string)
    except ValueError as exc:
        raise OptionsError(
            f"Failed to parse '{OPTIONS_PROPERTY_NAME}' with value '{option_string}'"
        ) from exc
    try:
        ctx = _option_string_command.make_context(OPTIONS_PROPERTY_NAME, args)
    except click.ClickException as exc:
        raise OptionsError(
            f"Failed to parse '{OPTIONS_PROPERTY_NAME}' with value '{option_string}': "
            f"{exc.format_message()}"
        ) from exc

    def given(param: str) -> bool:
        return ctx.get_parameter_source(param) is ParameterSource.COMMANDLINE

    params = ctx.params
    options = RuntimeOptions()
    try:
        if given("strict"):
            options.strict = params["strict"]
        if given("dry_run"):
            options.dry_run = params["dry_run"]
        if given("monochrome"):
            options.monochrome = params["monochrome"]
        if given("wip"):
            options.wip = params["wip"]
        if given("limit"):
            options.limit = params["limit"]
        if given("order"):
            options.order = PickleOrder.parse(params["order"])
        if given("snippets"):
            options.snippet_type = parse_snippet_type(params["snippets"])
        if given("object_factory"):
            options.object_factory = import_object(params["object_factory"])
        options.glue.extend(parse_glue(g) for g in params["glue"])
        options.tag_filters.extend(params["tags"])
        options.name_filters.extend(re.compile(n) for n in params["name"])
        options.plugins.extend((p, False) for p in params["plugin"])
        for feature in params["features"]:
            if feature.startswith("@"):
                options.reruns.extend(read_rerun_file(feature[1:]))
            else:
                options.features.append(FeatureWithLines.parse(feature))
    except (ValueError, OSError, re.error) as exc:
        raise OptionsError(
            f"Failed to parse '{OPTIONS_PROPERTY_NAME}' with value '{option_string}'"
        ) from exc
    return options


def parse_properties(properties: Mapping[str, str]) -> RuntimeOptions:
    """Resolve a mapping of ``cucumber.*`` properties into options.

    Raises:
        OptionsError: If a property value cannot be parsed.
    """
    option_string = properties.get(OPTIONS_PROPERTY_NAME)
    options = parse_option_string(option_string) if option_string else RuntimeOptions()

    def setter(attr: str) -> Callable[[Any], None]:
        return lambda value: setattr(options, attr, value)

    _parse(properties, ANSI_COLORS_DISABLED_PROPERTY_NAME, parse_boolean, setter("monochrome"))
    _parse(properties, EXECUTION_DRY_RUN_PROPERTY_NAME, parse_boolean, setter("dry_run"))
    _parse(properties, EXECUTION_LIMIT_PROPERTY_NAME, int, setter("limit"))
    _parse(properties, EXECUTION_ORDER_PROPERTY_NAME, PickleOrder.parse, setter("order"))
    _parse(properties, EXECUTION_STRICT_PROPERTY_NAME, parse_boolean, setter("strict"))

    _parse_all(
        properties,
        FEATURES_PROPERTY_NAME,
        lambda value: [
            FeatureWithLines.parse(part)
            for part in _split(value)
            if not part.startswith("@")
        ],
        options.features.append,
    )
    _parse_all(
        properties,
        FEATURES_PROPERTY_NAME,
        lambda value: [
            feature
            for part in _split(value)
            if part.startswith("@")
            for feature in read_rerun_file(part[1:])
        ],
        options.reruns.append,
    )

    _parse(properties, FILTER_NAME_PROPERTY_NAME, re.compile, options.name_filters.append)
    _parse(properties, FILTER_TAGS_PROPERTY_NAME, str.strip, options.tag_filters.append)
    _parse_all(
        properties,
        GLUE_PROPERTY_NAME,
        lambda value: [parse_glue(part) for part in _split(value)],
        options.glue.append,
    )
    _parse(properties, OBJECT_FACTORY_PROPERTY_NAME, import_object, setter("object_factory"))
    _parse_all(
        properties,
        PLUGIN_PROPERTY_NAME,
        _split,
        lambda plugin: options.plugins.append((plugin, True)),
    )
    _parse(properties, SNIPPET_TYPE_PROPERTY_NAME, parse_snippet_type, setter("snippet_type"))
    _parse(properties, WIP_PROPERTY_NAME, parse_boolean, setter("wip"))
    _parse_all(
        properties,
        GLUE_CLASSES_PROPERTY_NAME,
        lambda value: [import_object(part) for part in _split(value)],
        options.glue_classes.append,
    )
    return options


def environment_variable_name(property_name: str) -> str:
    """``cucumber.execution.dry-run`` -> ``CUCUMBER_EXECUTION_DRY_RUN``."""
    return property_name.upper().replace(".", "_").replace("-", "_")


def options_from_environment(env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect known properties from environment variables."""
    source = os.environ if env is None else env
    properties: dict[str, str] = {}
    for name in PROPERTY_NAMES:
        value = source.get(environment_variable_name(name))
        if value is not None:
            properties[name] = value
    return properties


def load_options(
    env_file: str | Path | None = None,
    properties: Mapping[str, str] | None = None,
) -> RuntimeOptions:
    """Resolve options from an optional ``.env`` file, the environment and *properties*.

    Explicit *properties* take precedence over environment variables.
    """
    if env_file is not None:
        loaded = load_dotenv(env_file)
        logger.debug("Loaded %s: %s", env_file, loaded)
    merged = options_from_environment()
    merged.update(properties or {})
    return parse_properties(merged)
