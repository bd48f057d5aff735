"""
Configuration for a load run.

A Java-style properties file supplies the base values; KEY VALUE pairs from
the command line override them. Precedence is override > file > default.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field

from tpccload.errors import ConfigError

_REQUIRED = object()

SECRET_KEYS = frozenset({"password"})

DRIVER_ALIASES = {
    "org.postgresql.Driver": "psycopg",
}


def read_properties(path: str | None) -> dict[str, str]:
    if not path:
        raise ConfigError("no properties file given (use --props or PROPS)")
    try:
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise ConfigError(f"cannot read properties file {path}: {e}") from e

    props: dict[str, str] = {}
    for raw in lines:
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        # key ends at the first '=', ':' or whitespace; one '=' or ':' may follow
        cut = 0
        while cut < len(line) and line[cut] not in "=: \t":
            cut += 1
        rest = line[cut:].lstrip()
        if rest[:1] in ("=", ":"):
            rest = rest[1:]
        props[line[:cut]] = rest.strip()
    return props


def parse_overrides(tokens: list[str]) -> dict[str, str]:
    """Fold KEY VALUE tokens into a lowercase-keyed map; first match wins."""
    if len(tokens) % 2:
        raise ConfigError(f"override '{tokens[-1]}' has no value")
    overrides: dict[str, str] = {}
    for i in range(0, len(tokens), 2):
        overrides.setdefault(tokens[i].lower(), tokens[i + 1])
    return overrides


class Settings:
    def __init__(self, props: dict[str, str], overrides: dict[str, str] | None = None):
        self._props = props
        self._overrides = overrides or {}

    def lookup(self, name: str) -> str | None:
        value = self._overrides.get(name.lower())
        if value is None:
            value = self._props.get(name)
        return value

    def get_string(self, name: str, default=_REQUIRED, warn: bool = True) -> str | None:
        value = self.lookup(name)
        if value is None:
            if default is _REQUIRED:
                raise ConfigError(f"{name} (not defined)")
            if warn:
                print(
                    f"[warn] {name} (not defined - using default '{default}')",
                    file=sys.stderr,
                )
            return default
        shown = "***********" if name in SECRET_KEYS else value
        print(f"[config] {name}={shown}")
        return value

    def get_int(self, name: str, default=_REQUIRED) -> int | None:
        value = self.get_string(name, default)
        if value is None or isinstance(value, int):
            return value
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"{name}: not an integer: '{value}'") from None


@dataclass(frozen=True)
class LoadConfig:
    warehouses: int
    load_workers: int = 4
    file_location: str | None = None
    csv_null_value: str = "NULL"
    driver: str | None = None
    conn: str | None = None
    user: str | None = None
    password: str | None = field(default=None, repr=False)
    seed: int | None = None

    @property
    def write_csv(self) -> bool:
        return self.file_location is not None

    @classmethod
    def resolve(cls, settings: Settings) -> LoadConfig:
        file_location = settings.get_string("fileLocation", None)
        # database settings are only needed, and only worth a warning, in DB mode
        db_mode = file_location is None
        db_default = _REQUIRED if db_mode else None

        driver = settings.get_string("driver", db_default, warn=db_mode)
        conn = settings.get_string("conn", db_default, warn=db_mode)
        user = settings.get_string("user", db_default, warn=db_mode)
        password = settings.get_string("password", db_default, warn=db_mode)

        cfg = cls(
            warehouses=settings.get_int("warehouses"),
            load_workers=settings.get_int("loadWorkers", 4),
            file_location=file_location,
            csv_null_value=settings.get_string("csvNullValue", "NULL"),
            driver=DRIVER_ALIASES.get(driver, driver),
            conn=conn,
            user=user,
            password=password,
            seed=settings.get_int("seed", None),
        )
        if cfg.warehouses < 0:
            raise ConfigError(f"warehouses must be >= 0, got {cfg.warehouses}")
        if cfg.load_workers < 1:
            raise ConfigError(f"loadWorkers must be >= 1, got {cfg.load_workers}")
        return cfg

    def dsn(self) -> str | None:
        if self.conn and self.conn.startswith("jdbc:"):
            return self.conn[len("jdbc:") :]
        return self.conn
