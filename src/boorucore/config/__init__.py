from .config import (
    CacheConfig,
    Config,
    HttpConfig,
    MonitoringConfig,
    RateLimitConfig,
    RetryConfig,
    SiteConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "CacheConfig",
    "Config",
    "HttpConfig",
    "MonitoringConfig",
    "RateLimitConfig",
    "RetryConfig",
    "SiteConfig",
    "find_config_file",
    "load_config",
]
