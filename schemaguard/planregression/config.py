"""Loading and validation of the plan-regression YAML config file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from schemaguard.planregression.finding import Thresholds, default_thresholds


class ConfigError(ValueError):
    """Raised when a config file cannot be read, parsed or validated."""


@dataclass(frozen=True)
class TopQuery:
    """A user-chosen query to EXPLAIN before and after the migration."""

    id: str
    sql: str


@dataclass(frozen=True)
class ThresholdOverrides:
    """Optional per-project threshold overrides; None means use the default."""

    caution_cost_ratio: Optional[float] = None
    stop_cost_ratio: Optional[float] = None
    min_cost_delta: Optional[float] = None
    caution_rows_ratio: Optional[float] = None
    stop_rows_ratio: Optional[float] = None
    min_rows_delta: Optional[float] = None


@dataclass
class Config:
    """The full config schema; everything in it is optional."""

    queries: list[TopQuery] = field(default_factory=list)
    thresholds: Optional[ThresholdOverrides] = None

    def effective_thresholds(self) -> Thresholds:
        """Defaults with this config's overrides applied."""
        return effective_thresholds(self)


def effective_thresholds(config: Optional[Config]) -> Thresholds:
    """Return the thresholds that apply to config, which may be None."""
    defaults = default_thresholds()
    if config is None or config.thresholds is None:
        return defaults
    overrides = {
        f.name: getattr(config.thresholds, f.name)
        for f in fields(ThresholdOverrides)
        if getattr(config.thresholds, f.name) is not None
    }
    return replace(defaults, **overrides)


def load_config(path: Union[str, Path, None]) -> Optional[Config]:
    """Read and validate a config file.

    An empty or missing path returns None, which disables plan analysis.
    Unreadable files, malformed YAML and schema violations raise ConfigError.
    """
    if not path:
        return None
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"read config: {exc}") from exc
    try:
        config = _parse(yaml.safe_load(raw))
    except yaml.YAMLError as exc:
        raise ConfigError(f"parse YAML config: {exc}") from exc
    except ValueError as exc:
        raise ConfigError(f"parse YAML config: {exc}") from exc
    try:
        _validate(config)
    except ValueError as exc:
        raise ConfigError(f"invalid config: {exc}") from exc
    return config


def _parse(data: Any) -> Config:
    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ValueError("top level must be a mapping")

    raw_queries = data.get("queries")
    if raw_queries is None:
        raw_queries = []
    if not isinstance(raw_queries, list):
        raise ValueError("queries must be a list")
    queries = [_parse_query(i, item) for i, item in enumerate(raw_queries)]

    raw_thresholds = data.get("thresholds")
    thresholds = None
    if raw_thresholds is not None:
        if not isinstance(raw_thresholds, dict):
            raise ValueError("thresholds must be a mapping")
        thresholds = ThresholdOverrides(
            **{
                f.name: _number(f.name, raw_thresholds.get(f.name))
                for f in fields(ThresholdOverrides)
            }
        )
    return Config(queries=queries, thresholds=thresholds)


def _parse_query(index: int, item: Any) -> TopQuery:
    if item is None:
        item = {}
    if not isinstance(item, dict):
        raise ValueError(f"queries[{index}] must be a mapping")
    return TopQuery(
        id=_scalar_text(f"queries[{index}].id", item.get("id")),
        sql=_scalar_text(f"queries[{index}].sql", item.get("sql")),
    )


def _scalar_text(name: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"{name} must be a scalar")


def _number(name: str, value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"thresholds.{name} must be a number")
    return float(value)


def _validate(config: Config) -> None:
    seen: set[str] = set()
    for i, query in enumerate(config.queries):
        if not query.id.strip():
            raise ValueError(f"queries[{i}]: id is required")
        if not query.sql.strip():
            raise ValueError(f"queries[{i}] (id={_quote(query.id)}): sql is required")
        if query.id in seen:
            raise ValueError(f"queries[{i}]: duplicate id {_quote(query.id)}")
        seen.add(query.id)
    if config.thresholds is not None:
        _validate_overrides(config.thresholds)
    _validate_effective(config.effective_thresholds())


def _validate_overrides(t: ThresholdOverrides) -> None:
    for name in ("caution_cost_ratio", "stop_cost_ratio", "caution_rows_ratio", "stop_rows_ratio"):
        value = getattr(t, name)
        if value is not None and value < 1.0:
            raise ValueError(f"thresholds.{name} must be >= 1.0")
    for name in ("min_cost_delta", "min_rows_delta"):
        value = getattr(t, name)
        if value is not None and value < 0:
            raise ValueError(f"thresholds.{name} must be >= 0")


def _validate_effective(t: Thresholds) -> None:
    if t.stop_cost_ratio < t.caution_cost_ratio:
        raise ValueError(
            f"thresholds: effective stop_cost_ratio ({_fmt(t.stop_cost_ratio)}) "
            f"must be >= caution_cost_ratio ({_fmt(t.caution_cost_ratio)})"
        )
    if t.stop_rows_ratio < t.caution_rows_ratio:
        raise ValueError(
            f"thresholds: effective stop_rows_ratio ({_fmt(t.stop_rows_ratio)}) "
            f"must be >= caution_rows_ratio ({_fmt(t.caution_rows_ratio)})"
        )
    if t.min_cost_delta < 0:
        raise ValueError(f"thresholds: effective min_cost_delta ({_fmt(t.min_cost_delta)}) must be >= 0")
    if t.min_rows_delta < 0:
        raise ValueError(f"thresholds: effective min_rows_delta ({_fmt(t.min_rows_delta)}) must be >= 0")


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _fmt(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text