"""TOML configuration management."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from usage_pulse import constants

CONFIG_DIR = Path(os.environ.get("USAGE_PULSE_CONFIG_DIR", "~/.config/usage-pulse")).expanduser()
CONFIG_FILE = CONFIG_DIR / "config.toml"

DEFAULT_CONFIG = """\
# usage-pulse configuration

[monitor]
# Seconds between usage refreshes ({min_interval}-{max_interval})
refresh_interval = {refresh_interval}
# Seconds between network reachability probes
network_probe_interval = {probe_interval}
# Host probed to detect network recovery
probe_host = "{probe_host}"

[notifications]
# Raise desktop alerts when usage crosses the critical threshold
enabled = true
# Percentage at which a limit is considered critical
critical_threshold = {critical}
# Percentage at which a limit is shown as a warning
warning_threshold = {warning}

[api]
usage_url = "{usage_url}"
# OAuth credentials maintained by Claude Code
credentials_file = "{credentials_file}"
""".format(
    min_interval=constants.MIN_REFRESH_INTERVAL,
    max_interval=constants.MAX_REFRESH_INTERVAL,
    refresh_interval=constants.DEFAULT_REFRESH_INTERVAL,
    probe_interval=constants.NETWORK_PROBE_INTERVAL_SECONDS,
    probe_host=constants.NETWORK_PROBE_HOST,
    critical=constants.CRITICAL_THRESHOLD,
    warning=constants.WARNING_THRESHOLD,
    usage_url=constants.USAGE_API_URL,
    credentials_file=constants.CREDENTIALS_FILE,
)


def init_config(force: bool = False) -> Path:
    """Create default config file. Returns path to config file."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    if CONFIG_FILE.exists() and not force:
        raise FileExistsError(f"Config already exists: {CONFIG_FILE}")
    CONFIG_FILE.write_text(DEFAULT_CONFIG)
    return CONFIG_FILE


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* into *base*, returning a new dict."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config() -> dict[str, Any]:
    """Load config from TOML file, merged on top of built-in defaults."""
    defaults = tomllib.loads(DEFAULT_CONFIG)
    if CONFIG_FILE.exists():
        on_disk = tomllib.loads(CONFIG_FILE.read_text())
        return _deep_merge(defaults, on_disk)
    return defaults


def get(section: str, key: str, default: Any = None) -> Any:
    """Get a config value by section and key."""
    cfg = load_config()
    return cfg.get(section, {}).get(key, default)


def clamp_interval(seconds: int | float) -> int:
    """Clamp a refresh interval into the supported range."""
    return int(min(max(seconds, constants.MIN_REFRESH_INTERVAL), constants.MAX_REFRESH_INTERVAL))


def refresh_interval(cfg: dict[str, Any] | None = None) -> int:
    """Return the configured refresh interval in seconds, clamped to bounds."""
    cfg = cfg if cfg is not None else load_config()
    value = cfg.get("monitor", {}).get("refresh_interval", constants.DEFAULT_REFRESH_INTERVAL)
    return clamp_interval(value)


def credentials_path(cfg: dict[str, Any] | None = None) -> Path:
    cfg = cfg if cfg is not None else load_config()
    raw = cfg.get("api", {}).get("credentials_file", constants.CREDENTIALS_FILE)
    return Path(raw).expanduser()


def data_dir() -> Path:
    """Return the data directory (same as config dir for simplicity)."""
    d = CONFIG_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d


def _toml_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return str(value)


def set_value(section: str, key: str, value: Any) -> None:
    """Write ``key = value`` into ``[section]`` of the config file.

    The rest of the file, comments included, is left as it was. Missing keys
    are added at the end of their section; a missing section is appended.
    """
    if not CONFIG_FILE.exists():
        init_config()

    entry = f"{key} = {_toml_scalar(value)}\n"
    lines = CONFIG_FILE.read_text().splitlines(keepends=True)
    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"

    header = f"[{section}]"
    start = next((i for i, line in enumerate(lines) if line.strip() == header), None)
    if start is None:
        lines.append(f"\n{header}\n{entry}")
    else:
        end = next(
            (i for i in range(start + 1, len(lines)) if lines[i].lstrip().startswith("[")),
            len(lines),
        )
        key_re = re.compile(rf"^\s*{re.escape(key)}\s*=")
        for i in range(start + 1, end):
            if key_re.match(lines[i]):
                lines[i] = entry
                break
        else:
            while end > start + 1 and not lines[end - 1].strip():
                end -= 1
            lines.insert(end, entry)

    CONFIG_FILE.write_text("".join(lines))
