"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "locate_torrent_data.toml"
DEFAULT_CONCURRENCY = 5
MAX_CONCURRENCY_CAP = 64


@dataclass(slots=True, frozen=True)
class ScanOptions:
    """Directory traversal settings."""

    max_depth: int | None = None
    follow_symlinks: bool = False


@dataclass(slots=True, frozen=True)
class LocatorConfig:
    """Fully merged index configuration."""

    concurrency: int = DEFAULT_CONCURRENCY
    scan: ScanOptions = ScanOptions()
    audit_path: Path | None = None

    def to_public_dict(self) -> dict[str, object]:
        """Return a serializable config snapshot."""
        return {
            "concurrency": self.concurrency,
            "scan": {
                "max_depth": self.scan.max_depth,
                "follow_symlinks": self.scan.follow_symlinks,
            },
            "audit_path": str(self.audit_path) if self.audit_path is not None else None,
        }


@dataclass(slots=True, frozen=True)
class ConfigOverrides:
    """Optional startup overrides applied at highest precedence."""

    concurrency: int | None = None
    max_depth: int | None = None
    follow_symlinks: bool | None = None
    audit_path: Path | None = None


def default_config() -> LocatorConfig:
    """Build the default configuration."""
    return LocatorConfig()


def load_config_file(config_dir: Path) -> dict[str, object]:
    """Load optional locate_torrent_data.toml from ``config_dir``."""
    config_path = config_dir / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def merge_config(
    base: LocatorConfig,
    payload: dict[str, object],
    overrides: ConfigOverrides,
    config_dir: Path | None = None,
) -> LocatorConfig:
    """Merge defaults, config file, then overrides."""
    queue_payload = _get_table(payload, "queue")
    scan_payload = _get_table(payload, "scan")
    audit_payload = _get_table(payload, "audit")

    concurrency = _optional_positive_int_with_cap(
        queue_payload.get("concurrency"),
        "queue.concurrency",
        base.concurrency,
        MAX_CONCURRENCY_CAP,
    )
    max_depth = base.scan.max_depth
    if "max_depth" in scan_payload:
        max_depth = _optional_positive_int_with_cap(
            scan_payload["max_depth"], "scan.max_depth", 0, cap=None
        )
    follow_symlinks = base.scan.follow_symlinks
    if "follow_symlinks" in scan_payload:
        raw_follow = scan_payload["follow_symlinks"]
        if not isinstance(raw_follow, bool):
            raise ValueError("Config field 'scan.follow_symlinks' must be a boolean.")
        follow_symlinks = raw_follow

    audit_path = base.audit_path
    if "path" in audit_payload:
        raw_path = audit_payload["path"]
        if not isinstance(raw_path, str) or not raw_path:
            raise ValueError("Config field 'audit.path' must be a non-empty string.")
        audit_path = Path(raw_path)
        if not audit_path.is_absolute() and config_dir is not None:
            audit_path = config_dir / audit_path

    merged = LocatorConfig(
        concurrency=concurrency,
        scan=ScanOptions(max_depth=max_depth, follow_symlinks=follow_symlinks),
        audit_path=audit_path,
    )
    return apply_overrides(merged, overrides)


def apply_overrides(config: LocatorConfig, overrides: ConfigOverrides) -> LocatorConfig:
    """Apply startup overrides at highest precedence."""
    concurrency = _optional_positive_int_with_cap(
        overrides.concurrency,
        "overrides.concurrency",
        config.concurrency,
        MAX_CONCURRENCY_CAP,
    )
    max_depth = config.scan.max_depth
    if overrides.max_depth is not None:
        max_depth = _optional_positive_int_with_cap(
            overrides.max_depth, "overrides.max_depth", 0, cap=None
        )
    scan = ScanOptions(
        max_depth=max_depth,
        follow_symlinks=(
            overrides.follow_symlinks
            if overrides.follow_symlinks is not None
            else config.scan.follow_symlinks
        ),
    )
    audit_path = overrides.audit_path or config.audit_path
    return LocatorConfig(
        concurrency=concurrency,
        scan=scan,
        audit_path=audit_path.resolve() if audit_path is not None else None,
    )


def load_effective_config(
    config_dir: Path | None = None, overrides: ConfigOverrides | None = None
) -> LocatorConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    base = default_config()
    if config_dir is None:
        return apply_overrides(base, overrides or ConfigOverrides())
    resolved_dir = config_dir.resolve()
    payload = load_config_file(resolved_dir)
    return merge_config(base, payload, overrides or ConfigOverrides(), config_dir=resolved_dir)


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
