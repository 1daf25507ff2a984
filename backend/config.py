from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from lottery_client.config import ClientSettings, load_from_environment


@dataclass(frozen=True)
class FlaskSettings:
    secret_key: str = "lotteryclient-dev-secret"
    debug: bool = True


@dataclass(frozen=True)
class AppSettings:
    flask: FlaskSettings
    client: ClientSettings
    demo: bool = False


@lru_cache(maxsize=1)
def load_settings(dotenv_path: Optional[str] = None) -> AppSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        load_dotenv()

    flask_settings = FlaskSettings(
        secret_key=os.getenv("FLASK_SECRET_KEY", "lotteryclient-dev-secret"),
        debug=os.getenv("FLASK_DEBUG", "1") == "1",
    )

    demo = os.getenv("LOTTERY_DEMO", "0") == "1"
    # Demo mode runs against the in-process lottery and needs no contract settings.
    client_settings = ClientSettings() if demo else load_from_environment()

    return AppSettings(flask=flask_settings, client=client_settings, demo=demo)
