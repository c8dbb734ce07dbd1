import os
import re
import tempfile
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Dict, Any
import yaml
from .exceptions import ConfigError
from .utils import log_debug, random_string, validate_port

DEFAULT_IMAGE = 'quay.io/libpod/registry:2.8.2'
DEFAULT_RUNTIME = 'podman'
DEFAULT_PORT_RANGE = (5000, 5999)
DEFAULT_CERT_SUBJECT = '/C=US/ST=Foo/L=Bar/O=Red Hat, Inc./CN=localhost'

# Prefix of the variables printed by `start`; the same names are read back as
# option fallbacks so `eval $(local-registry start)` followed by `stop` works.
ENV_PREFIX = 'PODMAN_REGISTRY_'

USER_PREFIX = 'user'
USER_RANDOM_LENGTH = 4
PASSWORD_LENGTH = 15

CONFIG_SECTIONS = ['registry', 'tls']

# Characters that keep their special meaning inside double quotes
_SHELL_SPECIAL = re.compile(r'([\\"$`])')


@dataclass
class RegistryConfig:
    """Everything one start/stop/ps/logs invocation needs to know"""
    image: str = DEFAULT_IMAGE
    user: Optional[str] = None
    password: Optional[str] = None
    port: Optional[int] = None
    runtime: str = DEFAULT_RUNTIME
    port_range: Tuple[int, int] = DEFAULT_PORT_RANGE
    pull_attempts: int = 3
    readiness_timeout: int = 5
    cert_days: int = 2
    cert_bits: int = 4096
    cert_subject: str = DEFAULT_CERT_SUBJECT
    tmpdir: str = field(default_factory=tempfile.gettempdir)

    def with_overrides(self, **overrides) -> 'RegistryConfig':
        """Copy with every non-None override applied"""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def as_shell_assignments(self):
        values = [
            ('IMAGE', self.image),
            ('PORT', self.port),
            ('USER', self.user),
            ('PASS', self.password),
        ]
        return [f'{ENV_PREFIX}{key}="{shell_quote(value)}"' for key, value in values]


def shell_quote(value) -> str:
    """Escape a value for use between double quotes in a POSIX shell"""
    return _SHELL_SPECIAL.sub(r'\\\1', str(value))


def resolve_credentials(config: RegistryConfig) -> RegistryConfig:
    """Fill in a random user and/or password where none was given"""
    user = config.user or USER_PREFIX + random_string(USER_RANDOM_LENGTH)
    password = config.password or random_string(PASSWORD_LENGTH)
    return replace(config, user=user, password=password)


def load_config(config_file: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> RegistryConfig:
    """Build the base configuration from built-in defaults, the YAML file and $PODMAN"""
    environ = os.environ if environ is None else environ
    config = RegistryConfig()

    if config_file:
        try:
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {config_file}: {e}")
        log_debug(f"Loaded config file {config_file}")
        config = config.with_overrides(**config_from_dict(data))

    if environ.get('PODMAN'):
        config = replace(config, runtime=environ['PODMAN'])

    validate_config(config)
    return config


def config_from_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map the YAML layout onto RegistryConfig field names"""
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping")

    unknown = [key for key in data if key not in CONFIG_SECTIONS]
    if unknown:
        raise ConfigError(
            f"Unknown config section(s): {', '.join(unknown)}. "
            f"Supported: {', '.join(CONFIG_SECTIONS)}"
        )

    registry = data.get('registry') or {}
    tls = data.get('tls') or {}
    if not isinstance(registry, dict) or not isinstance(tls, dict):
        raise ConfigError("Config sections 'registry' and 'tls' must be mappings")

    port_range = registry.get('port_range')
    if port_range is not None:
        if not isinstance(port_range, (list, tuple)) or len(port_range) != 2:
            raise ConfigError("registry.port_range must be a two-element list [low, high]")
        port_range = tuple(port_range)

    return {
        'image': registry.get('image'),
        'runtime': registry.get('runtime'),
        'port_range': port_range,
        'pull_attempts': registry.get('pull_attempts'),
        'readiness_timeout': registry.get('readiness_timeout'),
        'tmpdir': registry.get('tmpdir'),
        'cert_days': tls.get('days'),
        'cert_bits': tls.get('bits'),
        'cert_subject': tls.get('subject'),
    }


def validate_config(config: RegistryConfig) -> None:
    """Validate configuration values; raises ConfigError"""
    if not config.image:
        raise ConfigError("Registry image must not be empty")
    if not config.runtime:
        raise ConfigError("Container runtime must not be empty")

    if config.port is not None and not validate_port(config.port):
        raise ConfigError(f"Invalid port: {config.port}")

    low, high = config.port_range
    if not (validate_port(low) and validate_port(high)) or int(low) > int(high):
        raise ConfigError(f"Invalid port range: {low}-{high}")

    for name in ('pull_attempts', 'readiness_timeout', 'cert_days', 'cert_bits'):
        value = getattr(config, name)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise ConfigError(f"{name} must be a positive integer, got {value!r}")

    if not config.cert_subject:
        raise ConfigError("TLS certificate subject must not be empty")
