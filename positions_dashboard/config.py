import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .logging_config import DEFAULT_QUIET_LOGGERS


# Bond and CD quotes are per 100 of a 1,000 face value
DEFAULT_BOND_PRICE_MULTIPLIER = 10.0


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    log_json: bool = False
    local_csv_path: Optional[Path] = None
    bond_price_multiplier: float = DEFAULT_BOND_PRICE_MULTIPLIER
    quiet_loggers: Tuple[str, ...] = DEFAULT_QUIET_LOGGERS


def _truthy(val) -> bool:
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in ("1", "true", "yes", "on")


def _name_list(val) -> Tuple[str, ...]:
    # TOML gives a list, the env var a comma-separated string
    if isinstance(val, str):
        val = val.split(",")
    return tuple(str(name).strip() for name in val if str(name).strip())


def _read_settings_file() -> Dict[str, Any]:
    raw_path = os.getenv("POSITIONS_SETTINGS_PATH")
    if not raw_path:
        return {}
    p = Path(raw_path).expanduser()
    if not p.exists():
        raise RuntimeError(f"POSITIONS_SETTINGS_PATH is set but file not found: {p}")
    data = tomllib.loads(p.read_text())
    # Accept either a flat file or a [positions] table
    return data.get("positions", data)


def load_settings() -> Settings:
    """Resolve settings: TOML file -> env vars -> defaults."""
    file_vals = _read_settings_file()

    def pick(key: str, env_key: str):
        if key in file_vals:
            return file_vals[key]
        return os.getenv(env_key)

    level = pick("log_level", "LOG_LEVEL") or Settings.log_level
    log_json = pick("log_json", "LOG_JSON")
    csv_path = pick("local_csv_path", "LOCAL_CSV_PATH")
    multiplier = pick("bond_price_multiplier", "BOND_PRICE_MULTIPLIER")
    quiet = pick("quiet_loggers", "QUIET_LOGGERS")
    if multiplier in (None, ""):
        multiplier = DEFAULT_BOND_PRICE_MULTIPLIER
    try:
        multiplier = float(multiplier)
    except (TypeError, ValueError):
        raise RuntimeError(f"bond_price_multiplier must be numeric, got {multiplier!r}")

    return Settings(
        log_level=str(level).upper(),
        log_json=_truthy(log_json) if log_json is not None else False,
        local_csv_path=Path(csv_path).expanduser() if csv_path else None,
        bond_price_multiplier=multiplier,
        quiet_loggers=_name_list(quiet) if quiet is not None else DEFAULT_QUIET_LOGGERS,
    )
