"""Configuration management using Pydantic.

Provides:
- The typed Settings record shared by the form server and router client
- JSON file loading with defaults for the listen port and DMZ flag
- Example configuration generation
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from dmzctl.core.exceptions import ConfigurationError, ValidationError
from dmzctl.core.output import console
from dmzctl.core.validation import is_valid_dmz_enable, validate_dmz_enable


# Default configuration path (relative to the working directory)
DEFAULT_CONFIG_PATH = Path("config.json")

DEFAULT_SERVER_PORT = "8080"
DEFAULT_DMZ_ENABLE = "1"


def _as_text(value: Any) -> Any:
    """Coerce JSON numbers to strings; leave everything else to pydantic."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


class Settings(BaseModel):
    """Router firewall/DMZ settings plus the local server port.

    One instance lives for the whole process. It is populated once from
    the config file and then mutated in place by form submissions.
    Assignments are validated, so dmz_enable can never leave {"0", "1"}.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    router_ip: str = ""
    stok: str = ""
    ipv6_firewall_enable: str = ""
    dmz_dest_ip: str = ""
    dmz_dest_ip6: str = ""
    server_port: str = DEFAULT_SERVER_PORT
    dmz_enable: str = DEFAULT_DMZ_ENABLE

    @field_validator(
        "router_ip", "stok", "ipv6_firewall_enable", "dmz_dest_ip", "dmz_dest_ip6",
        mode="before",
    )
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        if v is None:
            return ""
        return _as_text(v)

    @field_validator("server_port", mode="before")
    @classmethod
    def default_port(cls, v: Any) -> Any:
        v = _as_text(v)
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_SERVER_PORT
        return v

    @field_validator("dmz_enable", mode="before")
    @classmethod
    def coerce_dmz_enable(cls, v: Any) -> Any:
        if v is None:
            return DEFAULT_DMZ_ENABLE
        return _as_text(v)

    @field_validator("dmz_enable")
    @classmethod
    def validate_dmz_enable(cls, v: str) -> str:
        if not is_valid_dmz_enable(v):
            raise ValueError("dmz_enable must be '0' or '1'")
        return v

    @classmethod
    def load(cls, path: Path) -> "Settings":
        """Load settings from a JSON file.

        Args:
            path: Path to configuration file

        Returns:
            Loaded settings, with defaults for omitted keys and for an
            invalid dmz_enable

        Raises:
            ConfigurationError: If file not found, unreadable or invalid
        """
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                hint="Create it with: dmzctl config init",
            )

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read configuration file: {path}",
                hint="Check file permissions and encoding (UTF-8)",
                details=[str(e)],
            ) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in configuration file: {path}",
                details=[str(e)],
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration must be a JSON object: {path}",
                details=[f"Got: {type(data).__name__}"],
            )

        dmz_enable = data.get("dmz_enable")
        if dmz_enable is not None:
            try:
                validate_dmz_enable(str(_as_text(dmz_enable)))
            except ValidationError:
                # Only the bad flag is dropped; the rest of the file still applies
                console.warn(
                    f"Ignoring dmz_enable {dmz_enable!r} in {path}, "
                    f"using {DEFAULT_DMZ_ENABLE} (must be 0 or 1)"
                )
                data = {key: value for key, value in data.items() if key != "dmz_enable"}

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {path}",
                details=[
                    f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                    for err in e.errors()
                ],
            ) from e

    def to_json(self, mask_stok: bool = False) -> str:
        """Convert settings to a JSON string."""
        data = self.masked() if mask_stok else self.model_dump()
        return json.dumps(data, indent=2, ensure_ascii=False)

    def masked(self) -> dict[str, str]:
        """Settings as a dict with the session token hidden."""
        data = self.model_dump()
        if data["stok"]:
            data["stok"] = data["stok"][:4] + "****"
        return data


def load_settings(path: Optional[Path] = None) -> tuple[Settings, Optional[ConfigurationError]]:
    """Load settings, falling back to defaults on any failure.

    The caller is expected to log the returned error and carry on with the
    defaults (server_port "8080", dmz_enable "1", everything else empty).

    Args:
        path: Path to configuration file (uses default if None)

    Returns:
        Tuple of (settings, error or None)
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    try:
        return Settings.load(path), None
    except ConfigurationError as e:
        return Settings(), e


def get_example_config() -> str:
    """Generate example configuration file content."""
    example = {
        "router_ip": "192.168.0.1",
        "stok": "",
        "ipv6_firewall_enable": "off",
        "dmz_enable": "1",
        "dmz_dest_ip": "192.168.0.102",
        "dmz_dest_ip6": "",
        "server_port": DEFAULT_SERVER_PORT,
    }
    return json.dumps(example, indent=2, ensure_ascii=False) + "\n"


def init_config(path: Path, force: bool = False) -> None:
    """Initialize a new configuration file.

    Args:
        path: Path to create config file
        force: Overwrite if exists

    Raises:
        ConfigurationError: If file exists and force is False
    """
    if path.exists() and not force:
        raise ConfigurationError(
            f"Configuration file already exists: {path}",
            hint="Use --force to overwrite",
        )

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(get_example_config(), encoding="utf-8")

    # The file will hold the router session token
    os.chmod(path, 0o600)
