"""Configuration loading from an optional YAML file, env vars, and CLI args.

Precedence, lowest first: dataclass defaults, YAML, environment, CLI flags.
"""

import os
import logging
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _optional_int(value) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _optional_float(value) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class Config:
    fixed_field_files: tuple[str, ...] = field(default_factory=tuple)
    json_files: tuple[str, ...] = field(default_factory=tuple)
    output_path: str | None = None          # None -> stdout
    registry_file: str = "recon_state/.registry.json"
    stats_file: str = "recon_state/stats.json"
    max_pending: int | None = None
    max_age_seconds: float | None = None
    emit_orphan_json_responses: bool = False
    stats_interval: float = 10.0


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded YAML config from %s", path)
        return data
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}


def _layered(cli_value, env_name: str, yaml_data: dict, key: str, default):
    if cli_value is not None:
        return cli_value
    if env_name in os.environ:
        return os.environ[env_name]
    return yaml_data.get(key, default)


def load_config(cli_args, yaml_data: dict) -> Config:
    """Build Config from CLI args, env vars, and parsed YAML data.

    *cli_args* is an argparse namespace; attributes it lacks count as unset.
    """
    def cli(name):
        return getattr(cli_args, name, None)

    fixed_files = cli("fixed_field_files") or yaml_data.get("fixed_field_files", [])
    json_files = cli("json_files") or yaml_data.get("json_files", [])

    emit_orphans = cli("emit_orphan_responses") or _parse_bool(_layered(
        None, "RECON_EMIT_ORPHAN_RESPONSES", yaml_data,
        "emit_orphan_json_responses", Config.emit_orphan_json_responses,
    ))

    return Config(
        fixed_field_files=tuple(fixed_files),
        json_files=tuple(json_files),
        output_path=_layered(cli("output"), "RECON_OUTPUT_PATH", yaml_data,
                             "output_path", Config.output_path) or None,
        registry_file=_layered(None, "RECON_REGISTRY_FILE", yaml_data,
                               "registry_file", Config.registry_file),
        stats_file=_layered(None, "RECON_STATS_FILE", yaml_data,
                            "stats_file", Config.stats_file),
        max_pending=_optional_int(_layered(cli("max_pending"), "RECON_MAX_PENDING", yaml_data,
                                           "max_pending", Config.max_pending)),
        max_age_seconds=_optional_float(_layered(cli("max_age"), "RECON_MAX_AGE_SECONDS", yaml_data,
                                                 "max_age_seconds", Config.max_age_seconds)),
        emit_orphan_json_responses=emit_orphans,
        stats_interval=float(_layered(None, "RECON_STATS_INTERVAL", yaml_data,
                                      "stats_interval", Config.stats_interval)),
    )
