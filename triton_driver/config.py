"""Option parsing and persisted configuration for triton-machine-driver."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Optional

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from triton_driver.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_ACCOUNT,
    DEFAULT_IMAGE,
    DEFAULT_KEY_ID,
    DEFAULT_KEY_MATERIAL,
    DEFAULT_KEY_PATH,
    DEFAULT_PACKAGE,
    DEFAULT_SSH_USER,
    DEFAULT_URL,
    DRIVER_NAME,
    ENV_PREFIX,
    FLAG_PREFIX,
)
from triton_driver.credentials import decode_key_material
from triton_driver.exceptions import ConfigurationError
from triton_driver.models import DriverConfig, HostIdentity
from triton_driver.utils import ensure_directory, get_env, log

# option name -> (environment variable or None, default, usage)
OPTIONS: Dict[str, tuple] = {
    "url": (ENV_PREFIX + "URL", DEFAULT_URL, "URL of the CloudAPI endpoint"),
    "account": (ENV_PREFIX + "ACCOUNT", DEFAULT_ACCOUNT, "Login name/username"),
    "key-id": (
        ENV_PREFIX + "KEY_ID",
        DEFAULT_KEY_ID,
        f"The fingerprint of ${ENV_PREFIX}KEY_PATH (ssh-keygen -l -E md5 -f ${ENV_PREFIX}KEY_PATH)",
    ),
    "key-path": (
        ENV_PREFIX + "KEY_PATH",
        DEFAULT_KEY_PATH,
        f"A path to an SSH private key file that has been added to ${ENV_PREFIX}ACCOUNT",
    ),
    "key-material": (
        None,
        DEFAULT_KEY_MATERIAL,
        f"The SSH private key file content (base64 encoded) that has been added to ${ENV_PREFIX}ACCOUNT",
    ),
    "image": (None, DEFAULT_IMAGE, 'VM image to provision ("debian-8", "debian-8@20150527", "ca291f66", etc)'),
    "package": (None, DEFAULT_PACKAGE, 'VM instance size to create ("g3-standard-0.25-kvm", etc)'),
    "ssh-user": (ENV_PREFIX + "SSH_USER", DEFAULT_SSH_USER, "Triton SSH user"),
}

_REQUIRED = ("account", "key-id", "url", "image", "package")


def option_default(name: str) -> str:
    """Return the environment value for option ``name``, or its built-in default."""
    env_var, default, _ = OPTIONS[name]
    if env_var is not None:
        value = get_env(env_var)
        if value is not None:
            return value
    return default


def _missing_message(name: str) -> str:
    env_var = OPTIONS[name][0]
    if env_var:
        return f"{DRIVER_NAME} driver requires the --{FLAG_PREFIX}{name}/{env_var} option"
    return f"{DRIVER_NAME} driver requires the --{FLAG_PREFIX}{name} option"


def build_config(options: Mapping[str, Optional[str]]) -> DriverConfig:
    """Validate option values (keyed by option name) into a :class:`DriverConfig`.

    Options left out of ``options`` fall back to the environment and then to
    the built-in defaults.
    """
    values: Dict[str, str] = {}
    for name in OPTIONS:
        raw = options.get(name)
        values[name] = (option_default(name) if raw is None else raw).strip()

    if values["key-material"]:
        decode_key_material(values["key-material"])

    for name in _REQUIRED:
        if not values[name]:
            raise ConfigurationError(_missing_message(name))

    if not values["key-path"] and not values["key-material"]:
        raise ConfigurationError(
            f"{DRIVER_NAME} driver requires the --{FLAG_PREFIX}key-path/{ENV_PREFIX}KEY_PATH "
            f"or --{FLAG_PREFIX}key-material option"
        )

    return DriverConfig(
        account=values["account"],
        key_id=values["key-id"],
        key_path=values["key-path"],
        key_material=values["key-material"],
        url=values["url"],
        image=values["image"],
        package=values["package"],
        ssh_user=values["ssh-user"] or DEFAULT_SSH_USER,
    )


def parse_env() -> DriverConfig:
    return build_config({})


def config_path(identity: HostIdentity) -> Path:
    return identity.resolve_store_path(CONFIG_FILE_NAME)


def load_config(identity: HostIdentity) -> DriverConfig:
    path = config_path(identity)
    if not path.exists():
        raise ConfigurationError(f"No saved configuration for machine '{identity.machine_name}' ({path})")
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Saved configuration {path} contains invalid YAML: {exc}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Saved configuration {path} must be a YAML mapping")
    return DriverConfig.from_record(data)


def save_config(identity: HostIdentity, config: DriverConfig) -> Path:
    path = config_path(identity)
    ensure_directory(path.parent)
    path.write_text(yaml.safe_dump(config.to_record(), default_flow_style=False, sort_keys=False))
    path.chmod(0o600)
    log("DEBUG", f"Saved configuration to {path}")
    return path
