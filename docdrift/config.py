"""Configuration loading for docdrift (docdrift.yaml)."""

from __future__ import annotations

import shlex
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import yaml

from .errors import ConfigError, UnknownFormatError
from .models import DocAreaMode
from .sources.acquire import ExportSource, LocalSource, SpecSource, UrlSource

CONFIG_FILENAME = "docdrift.yaml"
SPEC_FORMATS: Tuple[str, ...] = ("openapi3", "swagger2", "graphql", "fern", "postman")
DOCSITE_AREA = "docsite"


@dataclass(frozen=True)
class PathRule:
    """When a changed path matches ``match``, the ``impacts`` docs may need updates."""

    match: str
    impacts: Tuple[str, ...]


@dataclass(frozen=True)
class SpecProviderConfig:
    """Where the current and published copies of one interface definition live."""

    format: str
    current: SpecSource
    published: str


@dataclass
class DetectConfig:
    specs: List[SpecProviderConfig] = field(default_factory=list)
    paths: List[PathRule] = field(default_factory=list)


@dataclass
class PatchConfig:
    targets: List[str] = field(default_factory=list)
    require_human_confirmation: bool = False


@dataclass
class DocAreaConfig:
    """A named scope of documentation with its own detection and patch policy."""

    name: str
    mode: DocAreaMode
    detect: DetectConfig = field(default_factory=DetectConfig)
    patch: PatchConfig = field(default_factory=PatchConfig)
    reviewers: List[str] = field(default_factory=list)


@dataclass
class PrCaps:
    max_prs_per_day: int = 1
    max_files_touched: int = 12


@dataclass
class PolicyConfig:
    """Global guard rails applied by the policy engine."""

    allowlist: List[str]
    exclude: List[str] = field(default_factory=list)
    pr_caps: PrCaps = field(default_factory=PrCaps)
    autopatch_threshold: float = 0.8
    verification_commands: List[str] = field(default_factory=list)


@dataclass
class RuntimeConfig:
    state_dir: Path
    command_timeout: float = 120.0
    fetch_timeout: float = 30.0

    @property
    def state_path(self) -> Path:
        return self.state_dir / "state.json"

    @property
    def report_path(self) -> Path:
        return self.state_dir / "drift_report.json"

    @property
    def evidence_root(self) -> Path:
        return self.state_dir / "evidence"


@dataclass
class DocDriftConfig:
    """Represents the settings defined in docdrift.yaml."""

    root: Path
    policy: PolicyConfig
    runtime: RuntimeConfig
    doc_areas: List[DocAreaConfig] = field(default_factory=list)
    version: int = 2

    def area(self, name: str) -> Optional[DocAreaConfig]:
        for area in self.doc_areas:
            if area.name == name:
                return area
        return None

    def spec_commands(self) -> List[str]:
        commands: List[str] = []
        for area in self.doc_areas:
            for spec in area.detect.specs:
                if isinstance(spec.current, ExportSource):
                    commands.append(spec.current.command)
        return commands


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def load_config(config_path: Path) -> DocDriftConfig:
    """Load and validate configuration from disk.

    ``config_path`` may be the YAML file itself or the directory holding it.
    """
    config_file = _resolve_config_path(config_path)
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {config_file}")
    root = config_file.parent.resolve()
    data = _read_config(config_file)
    return parse_config(data, root=root)


def parse_config(data: Any, *, root: Path) -> DocDriftConfig:
    """Build a ``DocDriftConfig`` from an already-parsed YAML mapping."""
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    version = _as_int(data.get("version")) or 2
    if version not in (1, 2):
        raise ConfigError(f"Unsupported config version: {data.get('version')!r}")

    areas: List[DocAreaConfig] = []
    shorthand = _docsite_area(data)
    if shorthand is not None:
        areas.append(shorthand)
    for index, raw_area in enumerate(_as_list(data.get("docAreas"))):
        areas.append(_parse_doc_area(raw_area, f"docAreas[{index}]"))

    if not areas:
        raise ConfigError("Config must include docAreas, specProviders, openapi, or pathMappings")

    seen: set[str] = set()
    for area in areas:
        if area.name in seen:
            raise ConfigError(f"Duplicate docArea name: {area.name}")
        seen.add(area.name)

    policy = _parse_policy(_as_dict(data.get("policy")), _as_str_list(data.get("exclude")))
    runtime = _parse_runtime(_as_dict(data.get("runtime")), root)
    return DocDriftConfig(
        root=root,
        policy=policy,
        runtime=runtime,
        doc_areas=areas,
        version=version,
    )


def validate_runtime_config(
    config: DocDriftConfig,
    *,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> ValidationResult:
    """Check that configured commands can run and flag likely misconfigurations."""
    result = ValidationResult()
    commands = list(dict.fromkeys([*config.policy.verification_commands, *config.spec_commands()]))
    for command in commands:
        binary = _command_binary(command)
        if not binary or which(binary) is None:
            result.errors.append(f"Command not found for '{command}' (binary: {binary})")

    for area in config.doc_areas:
        if area.mode is DocAreaMode.AUTOGEN and not area.patch.targets and not area.detect.specs:
            result.warnings.append(f"docArea '{area.name}' is autogen but has no patch.targets")
        if area.mode is DocAreaMode.CONCEPTUAL and not area.detect.paths:
            result.warnings.append(f"docArea '{area.name}' is conceptual but has no detect.paths rules")
    return result


# ----------------------------------------------------------------------
# Internals


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        raise ConfigError(f"{path.name} is empty")
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded


def _docsite_area(data: Dict[str, Any]) -> Optional[DocAreaConfig]:
    """Fold the top-level shorthand (specProviders/openapi/pathMappings) into one area."""
    specs: List[SpecProviderConfig] = []
    for index, raw in enumerate(_as_list(data.get("specProviders"))):
        specs.append(_parse_spec_provider(raw, f"specProviders[{index}]"))

    simple = _as_dict(data.get("openapi"))
    if simple:
        specs.append(
            SpecProviderConfig(
                format="openapi3",
                current=ExportSource(
                    command=_require_str(simple, "export", "openapi"),
                    output_path=_require_str(simple, "generated", "openapi"),
                ),
                published=_require_str(simple, "published", "openapi"),
            )
        )

    rules = _parse_path_rules(data.get("pathMappings"), "pathMappings")
    if not specs and not rules:
        return None

    targets = _as_str_list(data.get("docsite"))
    return DocAreaConfig(
        name=DOCSITE_AREA,
        mode=DocAreaMode.AUTOGEN,
        detect=DetectConfig(specs=specs, paths=rules),
        patch=PatchConfig(targets=targets, require_human_confirmation=False),
    )


def _parse_doc_area(raw: Any, where: str) -> DocAreaConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"{where} must be a mapping")
    name = _require_str(raw, "name", where)
    mode_value = _as_str(raw.get("mode"))
    try:
        mode = DocAreaMode(mode_value)
    except ValueError as exc:
        raise ConfigError(f"{where}.mode must be 'autogen' or 'conceptual', got {mode_value!r}") from exc

    detect_data = _as_dict(raw.get("detect"))
    specs: List[SpecProviderConfig] = []
    single = detect_data.get("spec")
    if single is not None:
        specs.append(_parse_spec_provider(single, f"{where}.detect.spec"))
    for index, provider in enumerate(_as_list(detect_data.get("specProviders"))):
        specs.append(_parse_spec_provider(provider, f"{where}.detect.specProviders[{index}]"))
    legacy = _as_dict(detect_data.get("openapi"))
    if legacy:
        specs.append(
            SpecProviderConfig(
                format="openapi3",
                current=ExportSource(
                    command=_require_str(legacy, "exportCmd", f"{where}.detect.openapi"),
                    output_path=_require_str(legacy, "generatedPath", f"{where}.detect.openapi"),
                ),
                published=_require_str(legacy, "publishedPath", f"{where}.detect.openapi"),
            )
        )
    rules = _parse_path_rules(detect_data.get("paths"), f"{where}.detect.paths")
    if not specs and not rules:
        raise ConfigError(f"{where}.detect must include a spec provider or path rules")

    patch_data = _as_dict(raw.get("patch"))
    patch = PatchConfig(
        targets=_as_str_list(patch_data.get("targets")),
        require_human_confirmation=bool(_as_bool(patch_data.get("requireHumanConfirmation"))),
    )
    owners = _as_dict(raw.get("owners"))
    return DocAreaConfig(
        name=name,
        mode=mode,
        detect=DetectConfig(specs=specs, paths=rules),
        patch=patch,
        reviewers=_as_str_list(owners.get("reviewers")),
    )


def _parse_spec_provider(raw: Any, where: str) -> SpecProviderConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"{where} must be a mapping")
    fmt = _require_str(raw, "format", where)
    if fmt not in SPEC_FORMATS:
        supported = ", ".join(SPEC_FORMATS)
        raise UnknownFormatError(f"{where}.format {fmt!r} is not one of: {supported}")
    return SpecProviderConfig(
        format=fmt,
        current=_parse_source(raw.get("current"), f"{where}.current"),
        published=_require_str(raw, "published", where),
    )


def _parse_source(raw: Any, where: str) -> SpecSource:
    if not isinstance(raw, dict):
        raise ConfigError(f"{where} must be a mapping with a 'type'")
    kind = _as_str(raw.get("type"))
    if kind == "url":
        url = _require_str(raw, "url", where)
        if not url.startswith(("http://", "https://")):
            raise ConfigError(f"{where}.url must be an http(s) URL")
        return UrlSource(url=url)
    if kind == "local":
        return LocalSource(path=_require_str(raw, "path", where))
    if kind == "export":
        return ExportSource(
            command=_require_str(raw, "command", where),
            output_path=_require_str(raw, "outputPath", where),
        )
    raise ConfigError(f"{where}.type must be one of url, local, export; got {kind!r}")


def _parse_path_rules(raw: Any, where: str) -> List[PathRule]:
    rules: List[PathRule] = []
    for index, item in enumerate(_as_list(raw)):
        if not isinstance(item, dict):
            raise ConfigError(f"{where}[{index}] must be a mapping")
        match = _require_str(item, "match", f"{where}[{index}]")
        impacts = _as_str_list(item.get("impacts"))
        if not impacts:
            raise ConfigError(f"{where}[{index}].impacts must list at least one path")
        rules.append(PathRule(match=match, impacts=tuple(impacts)))
    return rules


def _parse_policy(data: Dict[str, Any], top_level_exclude: List[str]) -> PolicyConfig:
    allowlist = _as_str_list(data.get("allowlist"))
    if not allowlist:
        raise ConfigError("policy.allowlist must list at least one glob")

    caps_data = _as_dict(data.get("prCaps"))
    caps = PrCaps()
    max_prs = _as_int(caps_data.get("maxPrsPerDay"))
    if max_prs is not None:
        caps.max_prs_per_day = max_prs
    max_files = _as_int(caps_data.get("maxFilesTouched"))
    if max_files is not None:
        caps.max_files_touched = max_files
    if caps.max_prs_per_day < 1 or caps.max_files_touched < 1:
        raise ConfigError("policy.prCaps values must be positive integers")

    threshold = _as_float(_as_dict(data.get("confidence")).get("autopatchThreshold"))
    if threshold is None:
        threshold = 0.8
    if not 0.0 <= threshold <= 1.0:
        raise ConfigError("policy.confidence.autopatchThreshold must be between 0 and 1")

    verification = _as_dict(data.get("verification"))
    exclude = list(dict.fromkeys([*top_level_exclude, *_as_str_list(data.get("exclude"))]))
    return PolicyConfig(
        allowlist=allowlist,
        exclude=exclude,
        pr_caps=caps,
        autopatch_threshold=threshold,
        verification_commands=_as_str_list(verification.get("commands")),
    )


def _parse_runtime(data: Dict[str, Any], root: Path) -> RuntimeConfig:
    state_dir = Path(_as_str(data.get("stateDir")) or ".docdrift")
    if not state_dir.is_absolute():
        state_dir = root / state_dir
    runtime = RuntimeConfig(state_dir=state_dir)
    command_timeout = _as_float(data.get("commandTimeout"))
    if command_timeout is not None:
        runtime.command_timeout = command_timeout
    fetch_timeout = _as_float(data.get("fetchTimeout"))
    if fetch_timeout is not None:
        runtime.fetch_timeout = fetch_timeout
    if runtime.command_timeout <= 0 or runtime.fetch_timeout <= 0:
        raise ConfigError("runtime timeouts must be positive")
    return runtime


def _command_binary(command: str) -> str:
    try:
        parts = shlex.split(command)
    except ValueError:
        parts = command.split()
    return parts[0] if parts else ""


def _require_str(data: Dict[str, Any], key: str, where: str) -> str:
    value = _as_str(data.get(key))
    if not value:
        raise ConfigError(f"{where}.{key} is required")
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    raise ConfigError(f"Expected a list, got {type(value).__name__}")


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float)) and str(item)]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "DOCSITE_AREA",
    "DetectConfig",
    "DocAreaConfig",
    "DocDriftConfig",
    "PatchConfig",
    "PathRule",
    "PolicyConfig",
    "PrCaps",
    "RuntimeConfig",
    "SPEC_FORMATS",
    "SpecProviderConfig",
    "ValidationResult",
    "load_config",
    "parse_config",
    "validate_runtime_config",
]
