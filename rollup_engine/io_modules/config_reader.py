import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rollup_engine.common.errors import ConfigError

MALFORMED_POLICIES = ("fail", "skip")

DEFAULTS = {
    "base_path": ".",
    "client": "UNKNOWN",
    "log_level": "INFO",
    "source": {
        "sheet": "Full Data",
        "columns": None,
        "on_malformed": "fail",
    },
    "rollup": {
        "root_id": 1,
        "allow_zero_cost_leaves": False,
    },
    "report": {
        "enabled": True,
        "renderer": "plotly",
        "output_path": "output/plot.png",
        "value_divisor": 1000.0,
        "title_divisor": 1_000_000.0,
        "title_template": "Total cost: {total:.1f} M.SEK",
        "bar_width": 800,
        "pie_width": 600,
        "height": 400,
    },
    "export": {
        "enabled": True,
        "output_path": "output/cost_breakdown.csv",
    },
}


@dataclass
class SourceConfig:
    path: Path
    sheet: str = "Full Data"
    columns: Optional[dict] = field(default=None)
    on_malformed: str = "fail"

    @classmethod
    def from_config(cls, config: dict) -> "SourceConfig":
        source_cfg = config["source"]
        return cls(
            path=Path(config["base_path"]) / source_cfg["path"],
            sheet=source_cfg["sheet"],
            columns=source_cfg["columns"],
            on_malformed=source_cfg["on_malformed"],
        )


def read_config(config_path: Path) -> dict:
    try:
        with open(config_path, "r") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")


def resolve_config(raw: dict) -> dict:
    """
    Merges the raw YAML over DEFAULTS and validates values.
    Returns a plain dict with every section present.
    """
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")

    config = {}
    for key, default in DEFAULTS.items():
        value = raw.get(key)
        if isinstance(default, dict):
            if value is not None and not isinstance(value, dict):
                raise ConfigError(f"Config section '{key}' must be a mapping")
            config[key] = {**default, **(value or {})}
        else:
            config[key] = default if value is None else value

    if not config["source"].get("path"):
        raise ConfigError("Config 'source.path' is required")

    if config["source"]["on_malformed"] not in MALFORMED_POLICIES:
        raise ConfigError(
            f"Config 'source.on_malformed' must be one of {MALFORMED_POLICIES}, "
            f"got {config['source']['on_malformed']!r}"
        )

    columns = config["source"]["columns"]
    if columns is not None and not isinstance(columns, dict):
        raise ConfigError("Config 'source.columns' must be a mapping")

    root_id = config["rollup"]["root_id"]
    if isinstance(root_id, bool) or not isinstance(root_id, int) or root_id < 1:
        raise ConfigError(f"Config 'rollup.root_id' must be a positive integer, got {root_id!r}")

    report_cfg = config["report"]
    for key in ("value_divisor", "title_divisor", "bar_width", "pie_width", "height"):
        value = report_cfg[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError(f"Config 'report.{key}' must be a positive number, got {value!r}")

    template = report_cfg["title_template"]
    if not isinstance(template, str):
        raise ConfigError(f"Config 'report.title_template' must be a string, got {template!r}")
    try:
        template.format(total=0.0)
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        raise ConfigError(
            f"Config 'report.title_template' {template!r} is invalid; only {{total}} is available ({e!r})"
        )

    return config
