from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

ENV_PREFIX = "SCHOOLMAP_"


@dataclass(frozen=True)
class Settings:
    data_source: str = "data/schools.json"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    animate_interval_s: float = 0.12
    fetch_timeout_s: float = 60.0
    center: Tuple[float, float] = (42.7, 25.3)
    zoom: int = 7
    select_zoom: int = 12

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str, default):
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            try:
                return type(default)(raw)
            except ValueError as exc:
                raise ValueError(f"{ENV_PREFIX}{name}: cannot parse {raw!r}") from exc

        return cls(
            data_source=get("DATA", defaults.data_source),
            host=get("HOST", defaults.host),
            port=get("PORT", defaults.port),
            log_level=get("LOG_LEVEL", defaults.log_level).upper(),
            animate_interval_s=get("ANIMATE_INTERVAL", defaults.animate_interval_s),
            fetch_timeout_s=get("FETCH_TIMEOUT", defaults.fetch_timeout_s),
        )
