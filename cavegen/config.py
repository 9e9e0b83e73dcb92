# cavegen/config.py
"""
Generation settings for the 2D and 3D cave pipelines.

Profiles are stored as top-level mappings in a YAML file (``cave_2d``,
``cave_3d``); each key maps onto a :class:`CaveConfig` field.
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional, Tuple

import structlog
import yaml

from cavegen.constants import MAX_VERTICES_PER_CHUNK, PASSAGE_RADIUS, REGION_THRESHOLD

log = structlog.get_logger(__name__)


class ConfigError(ValueError):
    """Raised when generation settings cannot produce a valid field."""


@dataclass(frozen=True)
class CaveConfig:
    width: int = 128
    height: int = 72
    depth: Optional[int] = None
    border_size: int = 1
    wall_percent: int = 47
    max_wall_percent: int = 100
    seed: str = "cave"
    use_random_seed: bool = False
    smooth_iterations: int = 5
    smooth_limit: int = 4
    square_size: float = 1.0
    wall_height: float = 5.0
    max_vertices_per_chunk: int = MAX_VERTICES_PER_CHUNK
    region_threshold: int = REGION_THRESHOLD
    passage_radius: int = PASSAGE_RADIUS
    player_template: str = "player"

    @property
    def is_3d(self) -> bool:
        return self.depth is not None

    @property
    def shape(self) -> Tuple[int, ...]:
        """Unpadded field shape, indexed ``[x, y]`` or ``[x, y, z]``."""
        if self.depth is None:
            return (self.width, self.height)
        return (self.width, self.height, self.depth)

    @property
    def padded_shape(self) -> Tuple[int, ...]:
        return tuple(size + 2 * self.border_size for size in self.shape)

    def validate(self) -> "CaveConfig":
        """Fail fast on settings that would produce a corrupt field."""
        problems = []
        for name in ("width", "height"):
            if getattr(self, name) <= 0:
                problems.append(f"{name} must be positive")
        if self.depth is not None and self.depth <= 0:
            problems.append("depth must be positive")
        if self.border_size < 1:
            problems.append("border_size must be at least 1")
        if not 0 <= self.max_wall_percent <= 100:
            problems.append("max_wall_percent must be within [0, 100]")
        if not 0 <= self.wall_percent <= self.max_wall_percent:
            problems.append(
                f"wall_percent must be within [0, {self.max_wall_percent}]"
            )
        if self.smooth_iterations < 0:
            problems.append("smooth_iterations must not be negative")
        if self.smooth_limit < 0:
            problems.append("smooth_limit must not be negative")
        if self.square_size <= 0:
            problems.append("square_size must be positive")
        if self.wall_height < 0:
            problems.append("wall_height must not be negative")
        if self.region_threshold < 1:
            problems.append("region_threshold must be at least 1")
        if self.passage_radius < 0:
            problems.append("passage_radius must not be negative")
        if self.max_vertices_per_chunk < 3:
            problems.append("max_vertices_per_chunk must be at least 3")
        if problems:
            log.error("Invalid cave configuration", problems=problems)
            raise ConfigError("; ".join(problems))
        return self

    def with_overrides(self, **overrides: Any) -> "CaveConfig":
        """Return a validated copy with ``overrides`` applied (``None`` values skipped)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validate()


def config_from_mapping(data: Any, profile: str = "cave_2d") -> CaveConfig:
    """Build a validated :class:`CaveConfig` from a parsed YAML profile."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Profile '{profile}' must be a mapping")
    known = {f.name for f in fields(CaveConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        log.error("Unknown configuration keys", profile=profile, keys=unknown)
        raise ConfigError(f"Unknown keys in profile '{profile}': {', '.join(unknown)}")
    try:
        config = CaveConfig(**data)
    except TypeError as e:
        raise ConfigError(f"Profile '{profile}' is malformed: {e}") from e
    return config.validate()


def load_config(config_path: Path, profile: str = "cave_2d") -> CaveConfig:
    """Load one profile from a YAML file."""
    config_path = Path(config_path)
    if not config_path.is_file():
        log.error("Config file not found", path=str(config_path))
        raise FileNotFoundError(f"Cave configuration file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as e:
        log.error(
            "Error parsing YAML config", path=str(config_path), error=str(e), exc_info=True
        )
        raise
    if document is None:
        log.warning("Config file is empty, using defaults", path=str(config_path))
        document = {}
    if not isinstance(document, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping of profiles")
    if profile not in document:
        raise ConfigError(f"Profile '{profile}' not found in {config_path}")
    config = config_from_mapping(document[profile], profile)
    log.info("Cave config loaded", path=str(config_path), profile=profile)
    return config


__all__ = ["CaveConfig", "ConfigError", "config_from_mapping", "load_config"]
