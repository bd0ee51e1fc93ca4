from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    backend: str = Field("memcached", description="Collector to run (memcached or mysql).")
    host: str = Field("127.0.0.1", description="The host to monitor.")
    port: Optional[int] = Field(
        None, description="Service port. Defaults to the collector's standard port."
    )
    probe_key: str = Field(
        "statpoll_probe_key", description="Key both written and read by the self-test."
    )
    timeout_seconds: float = Field(
        0.25, gt=0, description="Maximum time to wait for each backend operation."
    )
    size_unit: str = Field(
        "MB", description="Unit for byte-valued stats: B, KB, MB or GB."
    )
    metrics: Optional[str] = Field(
        None, description="Comma-separated raw[:report] stats to report."
    )
    rates: Optional[str] = Field(
        None, description="Comma-separated per-second rates to compute."
    )
    instance: Optional[str] = Field(
        None, description="Snapshot namespace. Defaults to backend@host:port."
    )
    user: Optional[str] = Field(None, description="MySQL user.")
    password: Optional[str] = Field(None, description="MySQL password.")
    socket: Optional[str] = Field(None, description="MySQL unix socket path.")
    state_url: str = Field(
        "sqlite+aiosqlite:///./data/statpoll.db",
        description="SQLAlchemy database URL for the snapshot store.",
    )
    sqlalchemy_echo: bool = Field(False, description="Enable SQL echo logging.")
    log_level: str = Field("WARNING", description="Agent log level.")

    @field_validator("user", "password", "socket", "instance", "metrics", "rates")
    def blank_as_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value.strip() == "":
            return None
        return value

    class Config:
        env_prefix = "STATPOLL_"
        env_file = ".env"
        extra = "ignore"
