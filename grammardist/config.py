"""Configuration loading for grammardist (.grammardist.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".grammardist.yml"

MIRROR_UPDATE_POLICIES = ("reset", "fetch")
MANIFEST_STRATEGIES = ("scan", "central")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class SourcesConfig:
    """Where the grammars repository and the generator jar come from."""

    grammars_repo: str = "https://github.com/antlr/grammars-v4"
    clone_depth: int = 1
    mirror_update: str = "reset"
    git_timeout: Optional[float] = 600.0
    antlr_jar_url: str = "https://www.antlr.org/download/antlr-4.13.2-complete.jar"
    network_timeout: Optional[float] = 60.0
    max_redirects: int = 5


@dataclass
class ManifestConfig:
    """How grammars are discovered inside the mirror."""

    strategy: str = "scan"
    path: Optional[Path] = None


@dataclass
class GeneratorConfig:
    """ANTLR tool invocation settings."""

    target: str = "JavaScript"
    java: str = "java"
    heap: str = "500M"
    timeout: Optional[float] = None
    extension: str = ".js"


@dataclass
class BundlerConfig:
    """esbuild invocation settings."""

    executable: str = "esbuild"
    external: List[str] = field(default_factory=lambda: ["antlr4"])
    format: str = "esm"
    workers: int = 4
    timeout: Optional[float] = None


@dataclass
class CacheConfig:
    """Incremental build cache settings."""

    enabled: bool = True
    file: Optional[Path] = None


@dataclass
class ReadmeConfig:
    """Documentation template settings."""

    template: Path = Path("README.tmd")
    output: str = "README.md"


@dataclass
class GrammarDistConfig:
    """Represents the high-level settings defined in .grammardist.yml."""

    root: Path
    output_dir: Path
    build_dir: Path
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    manifest: ManifestConfig = field(default_factory=ManifestConfig)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    bundler: BundlerConfig = field(default_factory=BundlerConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    readme: ReadmeConfig = field(default_factory=ReadmeConfig)
    package_metadata: Path = Path("package.json")
    log_file: Optional[Path] = None

    @property
    def jar_path(self) -> Path:
        return self.build_dir / "antlr.jar"

    @property
    def mirror_dir(self) -> Path:
        return self.build_dir / "grammars-v4"

    @property
    def generated_dir(self) -> Path:
        return self.build_dir / "generated"

    @property
    def cache_file(self) -> Path:
        return self.cache.file or self.build_dir / "cache.json"


def default_config(root: Path) -> GrammarDistConfig:
    root = root.resolve()
    return GrammarDistConfig(
        root=root,
        output_dir=root / "dist",
        build_dir=root / ".build",
        readme=ReadmeConfig(template=root / "README.tmd"),
        package_metadata=root / "package.json",
    )


def load_config(config_path: Path) -> GrammarDistConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()
    config = default_config(root)

    if not config_file.exists():
        return config

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    output_dir = _as_str(data.get("output_dir"))
    if output_dir:
        config.output_dir = root / output_dir
    build_dir = _as_str(data.get("build_dir"))
    if build_dir:
        config.build_dir = root / build_dir
    package_metadata = _as_str(data.get("package_metadata"))
    if package_metadata:
        config.package_metadata = root / package_metadata
    log_file = _as_str(data.get("log_file"))
    if log_file:
        config.log_file = root / log_file

    sources_data = _as_dict(data.get("sources"))
    if sources_data:
        sources = config.sources
        sources.grammars_repo = _as_str(sources_data.get("grammars_repo")) or sources.grammars_repo
        sources.clone_depth = _as_int(sources_data.get("clone_depth")) or sources.clone_depth
        sources.mirror_update = (
            _as_str(sources_data.get("mirror_update")) or sources.mirror_update
        ).lower()
        if sources.mirror_update not in MIRROR_UPDATE_POLICIES:
            raise ConfigError(
                f"sources.mirror_update must be one of {', '.join(MIRROR_UPDATE_POLICIES)}"
            )
        if "git_timeout" in sources_data:
            sources.git_timeout = _as_float(sources_data.get("git_timeout"))
        sources.antlr_jar_url = _as_str(sources_data.get("antlr_jar_url")) or sources.antlr_jar_url
        if "network_timeout" in sources_data:
            sources.network_timeout = _as_float(sources_data.get("network_timeout"))
        max_redirects = _as_int(sources_data.get("max_redirects"))
        if max_redirects is not None:
            if max_redirects < 0:
                raise ConfigError("sources.max_redirects must not be negative")
            sources.max_redirects = max_redirects

    manifest_data = _as_dict(data.get("manifest"))
    if manifest_data:
        strategy = (_as_str(manifest_data.get("strategy")) or "scan").lower()
        if strategy not in MANIFEST_STRATEGIES:
            raise ConfigError(
                f"manifest.strategy must be one of {', '.join(MANIFEST_STRATEGIES)}"
            )
        manifest_path = _as_str(manifest_data.get("path"))
        config.manifest = ManifestConfig(
            strategy=strategy,
            path=root / manifest_path if manifest_path else None,
        )
        if strategy == "central" and config.manifest.path is None:
            raise ConfigError("manifest.path is required for the central strategy")

    generator_data = _as_dict(data.get("generator"))
    if generator_data:
        generator = config.generator
        generator.target = _as_str(generator_data.get("target")) or generator.target
        generator.java = _as_str(generator_data.get("java")) or generator.java
        generator.heap = _as_str(generator_data.get("heap")) or generator.heap
        generator.timeout = _as_float(generator_data.get("timeout"))
        generator.extension = _as_str(generator_data.get("extension")) or generator.extension

    bundler_data = _as_dict(data.get("bundler"))
    if bundler_data:
        bundler = config.bundler
        bundler.executable = _as_str(bundler_data.get("executable")) or bundler.executable
        if "external" in bundler_data:
            bundler.external = _as_str_list(bundler_data.get("external"))
        bundler.format = _as_str(bundler_data.get("format")) or bundler.format
        workers = _as_int(bundler_data.get("workers"))
        if workers is not None:
            if workers < 1:
                raise ConfigError("bundler.workers must be at least 1")
            bundler.workers = workers
        bundler.timeout = _as_float(bundler_data.get("timeout"))

    cache_data = _as_dict(data.get("cache"))
    if cache_data:
        enabled = _as_bool(cache_data.get("enabled"))
        cache_file = _as_str(cache_data.get("file"))
        config.cache = CacheConfig(
            enabled=True if enabled is None else enabled,
            file=root / cache_file if cache_file else None,
        )

    readme_data = _as_dict(data.get("readme"))
    if readme_data:
        template = _as_str(readme_data.get("template"))
        if template:
            config.readme.template = root / template
        config.readme.output = _as_str(readme_data.get("output")) or config.readme.output

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        if not config_path.exists():
            raise ConfigError(f"Project root not found: {config_path}")
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


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
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
