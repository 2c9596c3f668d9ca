"""
Configuration management for pdtemplate.

Loads the template configuration from $PDT_HOME/config.yaml and the runtime
settings the Package Deployer host passes through environment variables
(PACKAGEDEPLOYER_SETTINGS_*).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv

from pdtemplate.schemas import DesiredState

ENV_PREFIX = "PACKAGEDEPLOYER_SETTINGS_"
CONNREF_PREFIX = "CONNREF_"
LICENSED_USERNAME = "LICENSEDUSERNAME"
ACCESS_TOKEN_ENV = "PDT_ACCESS_TOKEN"


class ConfigError(Exception):
    """Configuration validation error."""
    pass


def get_pdt_home() -> Path:
    """Configuration directory: $PDT_HOME or ~/.config/pdtemplate."""
    home = os.environ.get("PDT_HOME")
    if home:
        return Path(home).expanduser()
    return Path("~/.config/pdtemplate").expanduser()


@dataclass(frozen=True)
class ComponentConfig:
    """A named component and the state it should be left in."""
    name: str
    state: DesiredState


@dataclass(frozen=True)
class SlaConfig:
    name: str
    is_default: bool = False


@dataclass
class TemplateConfig:
    """
    Deployment configuration for one package.

    Attributes:
        environment_url: Organization URL of the target environment
        api_version: Dataverse Web API version
        request_timeout: Per-request timeout in seconds
        env_file: Optional .env file loaded before running
        connection_owner: Default owner of connections (overridden by runtime settings)
        strict_resolution: Fail when a configured name matches no record
        activate_deactivate_slas: Deactivate SLAs before import and reactivate after
        processes: Processes and their desired state
        sdk_steps: SDK message processing steps and their desired state
        slas: SLAs, optionally flagged as default
        connection_references: Connection id by connection reference logical name
    """
    environment_url: str = ""
    api_version: str = "9.2"
    request_timeout: float = 120
    env_file: Optional[str] = None
    connection_owner: Optional[str] = None
    strict_resolution: bool = False
    activate_deactivate_slas: bool = True
    processes: list[ComponentConfig] = field(default_factory=list)
    sdk_steps: list[ComponentConfig] = field(default_factory=list)
    slas: list[SlaConfig] = field(default_factory=list)
    connection_references: dict[str, str] = field(default_factory=dict)

    @property
    def processes_to_activate(self) -> list[str]:
        return [p.name for p in self.processes if p.state == DesiredState.ACTIVE]

    @property
    def processes_to_deactivate(self) -> list[str]:
        return [p.name for p in self.processes if p.state == DesiredState.INACTIVE]

    @property
    def sdk_steps_to_activate(self) -> list[str]:
        return [s.name for s in self.sdk_steps if s.state == DesiredState.ACTIVE]

    @property
    def sdk_steps_to_deactivate(self) -> list[str]:
        return [s.name for s in self.sdk_steps if s.state == DesiredState.INACTIVE]

    @property
    def sla_names(self) -> list[str]:
        return [s.name for s in self.slas]

    @property
    def default_slas(self) -> list[str]:
        return [s.name for s in self.slas if s.is_default]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TemplateConfig":
        """
        Build and validate a TemplateConfig from parsed YAML.

        Raises:
            ConfigError: If a section has the wrong shape or an unknown state
        """
        connection_references = data.get("connection_references") or {}
        if not isinstance(connection_references, Mapping):
            raise ConfigError("connection_references must be a mapping of logical name to connection id")

        try:
            request_timeout = float(data.get("request_timeout", 120))
        except (TypeError, ValueError):
            raise ConfigError(
                f"request_timeout must be a number of seconds, got {data.get('request_timeout')!r}"
            ) from None

        return cls(
            environment_url=str(data.get("environment_url") or ""),
            api_version=str(data.get("api_version", "9.2")),
            request_timeout=request_timeout,
            env_file=data.get("env_file"),
            connection_owner=data.get("connection_owner"),
            strict_resolution=bool(data.get("strict_resolution", False)),
            activate_deactivate_slas=bool(data.get("activate_deactivate_slas", True)),
            processes=_components(data, "processes"),
            sdk_steps=_components(data, "sdksteps"),
            slas=[
                SlaConfig(name=item["name"], is_default=bool(item.get("isdefault", False)))
                for item in _items(data, "slas")
            ],
            connection_references={str(k): str(v) for k, v in connection_references.items()},
        )

    def __repr__(self) -> str:
        return (
            f"TemplateConfig(environment_url={self.environment_url}, processes={len(self.processes)}, "
            f"sdk_steps={len(self.sdk_steps)}, slas={len(self.slas)}, "
            f"connection_references={len(self.connection_references)})"
        )


def _items(data: Mapping[str, Any], section: str) -> list[dict[str, Any]]:
    items = data.get(section) or []
    if not isinstance(items, list):
        raise ConfigError(f"'{section}' must be a list")
    for item in items:
        if not isinstance(item, dict) or not item.get("name"):
            raise ConfigError(f"Every entry in '{section}' needs a 'name': {item!r}")
    return items


def _components(data: Mapping[str, Any], section: str) -> list[ComponentConfig]:
    components = []
    for item in _items(data, section):
        state = str(item.get("state", DesiredState.ACTIVE.value)).lower()
        try:
            components.append(ComponentConfig(name=item["name"], state=DesiredState(state)))
        except ValueError:
            raise ConfigError(
                f"{section} '{item['name']}': unknown state '{state}' (expected active or inactive)"
            ) from None
    return components


@dataclass
class RuntimeSettings:
    """
    Settings passed by the deployment host, keyed without the env prefix.

    PACKAGEDEPLOYER_SETTINGS_CONNREF_<NAME>=<connection id> becomes a
    connection map entry for <name> (lowercased).
    """
    values: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "RuntimeSettings":
        environ = os.environ if environ is None else environ
        return cls({
            key[len(ENV_PREFIX):].upper(): value
            for key, value in environ.items()
            if key.upper().startswith(ENV_PREFIX)
        })

    @property
    def connection_map(self) -> dict[str, str]:
        return {
            key[len(CONNREF_PREFIX):].lower(): value
            for key, value in self.values.items()
            if key.startswith(CONNREF_PREFIX) and value
        }

    @property
    def licensed_username(self) -> Optional[str]:
        return self.values.get(LICENSED_USERNAME) or None


def load_config(config_path: Optional[Path] = None) -> TemplateConfig:
    """
    Load template configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to $PDT_HOME/config.yaml

    Returns:
        TemplateConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If the config is empty or invalid
    """
    if config_path is None:
        config_path = get_pdt_home() / "config.yaml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"pdtemplate config.yaml not found at {config_path}. Run 'pdt init' to create one."
        )

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")
    if not data:
        raise ConfigError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping")

    config = TemplateConfig.from_dict(data)

    if config.env_file:
        env_path = Path(config.env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path, override=False)

    return config
