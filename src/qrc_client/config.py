from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 1710

DEFAULT_STATUS_EXCLUSIONS: list[dict[str, str]] = [
    {"control": "StreamStatus", "string_contains": "Connected to Encoder"},
]


class ConnectionConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QRC_", frozen=True)

    host: str
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    username: str = ""
    password: str = ""
    password_file: str = ""
    default_component: str = ""
    verbose: bool = False

    connect_timeout: float = Field(default=10.0, gt=0)
    operation_timeout: float = Field(default=30.0, gt=0)
    settle_window: float = Field(default=1.0, gt=0)
    request_id: int = 1234
    recheck_delay: float = Field(default=2.0, ge=0)

    status_exclusions: list[dict[str, str]] = Field(
        default_factory=lambda: [dict(rule) for rule in DEFAULT_STATUS_EXCLUSIONS]
    )

    system_label: str = ""
    site_label: str = ""

    @field_validator("host")
    @classmethod
    def _host_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("host must not be empty")
        return value

    @property
    def secret(self) -> str:
        return self.password or self.read_secret(self.password_file)

    @property
    def credentials(self) -> tuple[str, str] | None:
        secret = self.secret
        if self.username and secret:
            return self.username, secret
        return None

    def read_secret(self, path: str) -> str:
        if not path:
            return ""
        try:
            with open(path) as f:
                return f.read().strip()
        except FileNotFoundError:
            return ""
