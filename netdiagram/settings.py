"""Runtime settings read from the environment."""

import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel

CONFIG_DIR_ENV = "NETDIAGRAM_CONFIG_DIR"
DATA_DIR_ENV = "NETDIAGRAM_DATA_DIR"
RERENDER_ENV = "NETDIAGRAM_RERENDER_ON_UPDATE"


class Settings(BaseModel):
    """Where configuration and diagram data live."""

    config_dir: Path = Path("config")
    data_dir: Path = Path("data")
    rerender_on_update: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``NETDIAGRAM_*`` variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        values: dict[str, str] = {}
        if environ.get(CONFIG_DIR_ENV):
            values["config_dir"] = environ[CONFIG_DIR_ENV]
        if environ.get(DATA_DIR_ENV):
            values["data_dir"] = environ[DATA_DIR_ENV]
        if environ.get(RERENDER_ENV):
            values["rerender_on_update"] = environ[RERENDER_ENV]
        return cls.model_validate(values)
