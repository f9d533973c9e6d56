"""Runtime settings, overridable from the environment."""

import os
from dataclasses import dataclass

OSV_API = "https://api.osv.dev/v1"
DEPS_DEV_API = "https://api.deps.dev/v3"


@dataclass
class Settings:
    """Settings for one analysis run."""

    osv_api_url: str = OSV_API
    deps_dev_api_url: str = DEPS_DEV_API
    timeout: float = 30.0
    max_concurrency: int = 5
    fallback_versions: int = 10
    include_dev: bool = False

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from MAINTCOST_* variables, then apply explicit overrides."""
        settings = cls(
            osv_api_url=os.getenv("MAINTCOST_OSV_API", OSV_API),
            deps_dev_api_url=os.getenv("MAINTCOST_DEPS_DEV_API", DEPS_DEV_API),
            timeout=float(os.getenv("MAINTCOST_TIMEOUT", "30.0")),
            max_concurrency=int(os.getenv("MAINTCOST_MAX_CONCURRENCY", "5")),
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(settings, key, value)
        if settings.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        return settings
