"""
Settings for the norlys feeds, read from the environment.

    NORLYS_API_BASE                 - norlys API root (default: https://api.norlys.live)
    NORLYS_LYS_INDEX_PATH           - Lys index path (default: /data/lys-index)
    NORLYS_MAP_PATH                 - map matrices path (default: /norlys/latest)
    NOAA_PLASMA_URL                 - NOAA RTSW 6-hour plasma JSON
    NOAA_MAG_URL                    - NOAA RTSW 6-hour magnetic field JSON
    NORLYS_HTTP_TIMEOUT             - seconds per request (default: 10)
    NORLYS_WINDOW_HOURS             - index window length (default: 6)
    NORLYS_PROPAGATION_DISTANCE_KM  - L1 distance (default: 1500000)
    NORLYS_OBSERVER_LAT / _LON      - fallback observer (default: Paris)
    NORLYS_LOG_LEVEL                - logging level for the CLI (default: INFO)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from norlys_core.arrival import L1_DISTANCE_KM
from norlys_core.nearest import Coordinate

DEFAULT_API_BASE = "https://api.norlys.live"
DEFAULT_PLASMA_URL = "https://services.swpc.noaa.gov/text/rtsw/data/plasma-6-hour.i.json"
DEFAULT_MAG_URL = "https://services.swpc.noaa.gov/text/rtsw/data/mag-6-hour.i.json"


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    val = env.get(name)
    if val is None:
        return default
    try:
        return float(val.strip())
    except ValueError:
        return default


def _env_log_level(env: Mapping[str, str], name: str, default: str) -> str:
    val = env.get(name, default).strip().upper()
    # getLevelName maps known names to their numeric level
    if isinstance(logging.getLevelName(val), int):
        return val
    return default


@dataclass(frozen=True)
class Settings:
    api_base: str = DEFAULT_API_BASE
    lys_index_path: str = "/data/lys-index"
    map_path: str = "/norlys/latest"
    plasma_url: str = DEFAULT_PLASMA_URL
    mag_url: str = DEFAULT_MAG_URL
    http_timeout: float = 10.0
    window_hours: float = 6.0
    propagation_distance_km: float = L1_DISTANCE_KM
    observer: Coordinate = Coordinate(48.8566, 2.3522)
    log_level: str = "INFO"

    @property
    def lys_index_url(self) -> str:
        return self.api_base.rstrip("/") + self.lys_index_path

    @property
    def map_url(self) -> str:
        return self.api_base.rstrip("/") + self.map_path

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        if env is None:
            env = os.environ
        d = cls()
        return cls(
            api_base=env.get("NORLYS_API_BASE", d.api_base),
            lys_index_path=env.get("NORLYS_LYS_INDEX_PATH", d.lys_index_path),
            map_path=env.get("NORLYS_MAP_PATH", d.map_path),
            plasma_url=env.get("NOAA_PLASMA_URL", d.plasma_url),
            mag_url=env.get("NOAA_MAG_URL", d.mag_url),
            http_timeout=_env_float(env, "NORLYS_HTTP_TIMEOUT", d.http_timeout),
            window_hours=_env_float(env, "NORLYS_WINDOW_HOURS", d.window_hours),
            propagation_distance_km=_env_float(
                env, "NORLYS_PROPAGATION_DISTANCE_KM", d.propagation_distance_km
            ),
            observer=Coordinate(
                _env_float(env, "NORLYS_OBSERVER_LAT", d.observer.lat),
                _env_float(env, "NORLYS_OBSERVER_LON", d.observer.lon),
            ),
            log_level=_env_log_level(env, "NORLYS_LOG_LEVEL", d.log_level),
        )
