"""
Pysite Configuration System

Settings are grouped in dataclasses whose defaults are read from environment
variables when the dataclass is instantiated.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes', 'on')


@dataclass
class ServerConfig:
    """Server configuration"""
    host: str = field(default_factory=lambda: os.getenv('HOST', '127.0.0.1'))
    port: int = field(default_factory=lambda: int(os.getenv('PORT', '8000')))
    backlog: int = field(default_factory=lambda: int(os.getenv('BACKLOG', '2048')))
    keep_alive_timeout: int = field(default_factory=lambda: int(os.getenv('KEEP_ALIVE_TIMEOUT', '5')))
    ssl_certfile: Optional[str] = field(default_factory=lambda: os.getenv('SSL_CERTFILE'))
    ssl_keyfile: Optional[str] = field(default_factory=lambda: os.getenv('SSL_KEYFILE'))
    access_log: bool = field(default_factory=lambda: _env_bool('ACCESS_LOG', 'True'))
    uvloop: bool = field(default_factory=lambda: _env_bool('USE_UVLOOP', 'False'))
    debug: bool = field(default_factory=lambda: _env_bool('DEBUG', 'False'))


@dataclass
class SitesConfig:
    """Tenant directory configuration"""
    path: str = field(default_factory=lambda: os.getenv('SITES_PATH', 'sites'))
    default_site: Optional[str] = field(default_factory=lambda: os.getenv('DEFAULT_SITE') or None)
    trust_proxy_headers: bool = field(default_factory=lambda: _env_bool('TRUST_PROXY_HEADERS', 'False'))


@dataclass
class TemplateConfig:
    """Template engine configuration applied to every tenant"""
    start_delim: str = field(default_factory=lambda: os.getenv('TEMPLATE_START_DELIM', '{{'))
    end_delim: str = field(default_factory=lambda: os.getenv('TEMPLATE_END_DELIM', '}}'))
    sanitize: bool = field(default_factory=lambda: _env_bool('TEMPLATE_SANITIZE', 'True'))
    max_iterations: int = field(default_factory=lambda: int(os.getenv('TEMPLATE_MAX_ITERATIONS', '10000')))
    clear_blocks_on_render: bool = field(default_factory=lambda: _env_bool('TEMPLATE_CLEAR_BLOCKS', 'False'))


@dataclass
class SessionConfig:
    """Login session configuration"""
    cookie_name: str = field(default_factory=lambda: os.getenv('SESSION_COOKIE', 'pysite_session'))
    max_age: int = field(default_factory=lambda: int(os.getenv('SESSION_MAX_AGE', '1209600')))  # 14 days
    secure: bool = field(default_factory=lambda: _env_bool('SESSION_SECURE', 'False'))


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))
    file: Optional[str] = field(default_factory=lambda: os.getenv('LOG_FILE'))
    format: str = field(default_factory=lambda: os.getenv(
        'LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'))


@dataclass
class AppConfig:
    """Main application configuration"""
    debug: bool = field(default_factory=lambda: _env_bool('DEBUG', 'False'))

    server: ServerConfig = field(default_factory=ServerConfig)
    sites: SitesConfig = field(default_factory=SitesConfig)
    templates: TemplateConfig = field(default_factory=TemplateConfig)
    sessions: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        if self.server.port < 0 or self.server.port > 65535:
            raise ValueError(f"Invalid port {self.server.port}")
        if self.templates.max_iterations <= 0:
            raise ValueError("TEMPLATE_MAX_ITERATIONS must be positive")

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port


class ConfigPresets:
    """Configuration presets for different environments"""

    @staticmethod
    def development() -> AppConfig:
        return AppConfig(
            debug=True,
            server=ServerConfig(host='127.0.0.1', port=8000, debug=True),
            logging=LoggingConfig(level='DEBUG'),
        )

    @staticmethod
    def production() -> AppConfig:
        return AppConfig(
            debug=False,
            server=ServerConfig(host='0.0.0.0', debug=False),
            sessions=SessionConfig(secure=True),
            logging=LoggingConfig(level='WARNING'),
        )

    @staticmethod
    def testing() -> AppConfig:
        return AppConfig(
            debug=True,
            server=ServerConfig(host='127.0.0.1', port=0, debug=True, access_log=False),
            logging=LoggingConfig(level='ERROR'),
        )


def get_config_from_environment() -> AppConfig:
    """Get configuration based on PYSITE_ENV"""
    env = os.getenv('PYSITE_ENV', 'development').lower()

    if env == 'production':
        return ConfigPresets.production()
    elif env == 'testing':
        return ConfigPresets.testing()
    else:
        return ConfigPresets.development()


__all__ = [
    'AppConfig', 'ServerConfig', 'SitesConfig', 'TemplateConfig', 'SessionConfig',
    'LoggingConfig', 'ConfigPresets', 'get_config_from_environment',
]
