from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple, TypeAlias
import tomllib

from buildergen.synthesis.model import (
    DEFAULT_BUILDER_SUFFIX,
    DEFAULT_FACTORY_METHOD,
    SynthesisConfig,
)

DEFAULT_CONFIG_NAME = "buildergen.toml"
DEFAULT_MODULE_SUFFIX = "_builders"
DEFAULT_EXCLUDE_DIRS: Tuple[str, ...] = (
    ".git",
    ".venv",
    "venv",
    "__pycache__",
    "build",
    "dist",
)

# Values the [synthesis] and [generate] sections are read as.
TomlValue: TypeAlias = str | int | float | bool | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})


def _load_toml(path: Path) -> TomlTable:
    """Parse ``path``; a missing, unreadable or malformed file reads as empty."""
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        config_path = (root or Path.cwd()) / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(name: str, root: Path | None, config_path: Path | None) -> TomlTable:
    section = load_config(root=root, config_path=config_path).get(name, {})
    return section if isinstance(section, dict) else {}


def synthesis_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section("synthesis", root, config_path)


def generate_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section("generate", root, config_path)


def _names(value: TomlValue | None) -> list[str]:
    """Names from a list of strings or one comma separated string."""
    if isinstance(value, str):
        raw = [value]
    elif isinstance(value, list):
        raw = [item for item in value if isinstance(item, str)]
    else:
        return []
    return [part.strip() for item in raw for part in item.split(",") if part.strip()]


def _as_bool(value: TomlValue | None) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_WORDS
    if isinstance(value, (bool, int)):
        return bool(value)
    return False


def _as_str(value: TomlValue | None, default: str) -> str:
    return value if isinstance(value, str) else default


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


@dataclass(frozen=True)
class GenerationConfig:
    builder_suffix: str = DEFAULT_BUILDER_SUFFIX
    factory_method: str = DEFAULT_FACTORY_METHOD
    unchecked_roots: Tuple[str, ...] = ("RuntimeError",)
    require_complete: bool = False
    module_suffix: str = DEFAULT_MODULE_SUFFIX
    output_root: Path | None = None
    exclude_dirs: Tuple[str, ...] = field(default=DEFAULT_EXCLUDE_DIRS)

    @property
    def synthesis(self) -> SynthesisConfig:
        return SynthesisConfig(
            unchecked_roots=self.unchecked_roots,
            require_complete=self.require_complete,
        )

    def is_generated_path(self, path: Path) -> bool:
        return path.stem.endswith(self.module_suffix)


def generation_config(
    synthesis: TomlTable | None = None,
    generate: TomlTable | None = None,
    *,
    root: Path | None = None,
) -> GenerationConfig:
    synthesis = synthesis or {}
    generate = generate or {}
    roots = _names(synthesis.get("unchecked_roots"))
    exclude = _names(generate.get("exclude"))
    output_root: Path | None = None
    raw_output = generate.get("output_root")
    if isinstance(raw_output, str) and raw_output.strip():
        output_root = Path(raw_output)
        if root is not None and not output_root.is_absolute():
            output_root = root / output_root
    return GenerationConfig(
        builder_suffix=_as_str(synthesis.get("builder_suffix"), DEFAULT_BUILDER_SUFFIX),
        factory_method=_as_str(synthesis.get("factory_method"), DEFAULT_FACTORY_METHOD),
        unchecked_roots=tuple(roots) if roots else ("RuntimeError",),
        require_complete=_as_bool(synthesis.get("require_complete")),
        module_suffix=_as_str(generate.get("module_suffix"), DEFAULT_MODULE_SUFFIX),
        output_root=output_root,
        exclude_dirs=tuple(dict.fromkeys((*DEFAULT_EXCLUDE_DIRS, *exclude))),
    )
