"""Agent-wide settings consumed by the config provider."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_CONF_DIR = "/etc/telemetry-agent/config"


class AppSettings(BaseModel):
    """Holds the root directory under which all config families live."""

    conf_dir: Path = Field(default=Path(DEFAULT_CONF_DIR))

    @field_validator("conf_dir", mode="before")
    @classmethod
    def _default_when_empty(cls, value: object) -> object:
        if value is None or value == "":
            return DEFAULT_CONF_DIR
        return value

    def get_conf_dir(self) -> Path:
        return self.conf_dir.expanduser().absolute()
