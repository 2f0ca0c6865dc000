import os
from typing import Mapping, Optional

from sqlalchemy.engine import URL

from .errors import ConfigError


REQUIRED_DB_VARS = ("DB_USER", "DB_HOST", "DB_NAME", "DB_PASSWORD", "DB_PORT")


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        env = os.environ if environ is None else environ

        # connection parts injected by the deployment environment
        self.DB_USER: str | None = env.get("DB_USER")
        self.DB_HOST: str | None = env.get("DB_HOST")
        self.DB_NAME: str | None = env.get("DB_NAME")
        self.DB_PASSWORD: str | None = env.get("DB_PASSWORD")
        self.DB_PORT: str | None = env.get("DB_PORT")

        # overrides the DB_* parts when present (sqlite for local runs)
        self.DATABASE_URL: str | None = env.get("DATABASE_URL")

        self.HOST: str = env.get("HOST", "0.0.0.0")
        self.PORT: str = env.get("PORT", "3000")
        self.DB_POOL_SIZE: str = env.get("DB_POOL_SIZE", "5")
        self.SHUTDOWN_TIMEOUT: str = env.get("SHUTDOWN_TIMEOUT", "10")
        self.STARTUP_FAIL_FAST: bool = _as_bool(env.get("STARTUP_FAIL_FAST", "false"))
        self.LOG_LEVEL: str = env.get("LOG_LEVEL", "INFO").upper()

    def validate(self) -> None:
        """Raise ConfigError listing every missing or malformed option."""
        problems: list[str] = []

        if not self.DATABASE_URL:
            missing = [name for name in REQUIRED_DB_VARS if not getattr(self, name)]
            if missing:
                problems.append(
                    f"missing required environment variables: {', '.join(missing)}"
                )
            elif not self.DB_PORT.isdigit():
                problems.append("DB_PORT must be an integer")

        for name in ("PORT", "DB_POOL_SIZE"):
            if not getattr(self, name).isdigit():
                problems.append(f"{name} must be an integer")

        try:
            float(self.SHUTDOWN_TIMEOUT)
        except ValueError:
            problems.append("SHUTDOWN_TIMEOUT must be a number")

        if problems:
            raise ConfigError("; ".join(problems))

    @property
    def port(self) -> int:
        return int(self.PORT)

    @property
    def pool_size(self) -> int:
        return int(self.DB_POOL_SIZE)

    @property
    def shutdown_timeout(self) -> float:
        return float(self.SHUTDOWN_TIMEOUT)

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        url = URL.create(
            "postgresql+psycopg2",
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=int(self.DB_PORT),
            database=self.DB_NAME,
        )
        return url.render_as_string(hide_password=False)
