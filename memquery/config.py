import os
from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional

from dateutil import tz
from dotenv import load_dotenv

from .errors import InvalidConfiguration


@dataclass(frozen=True)
class QueryConfig:
    """Locale and time zone used while building and evaluating queries.

    Evaluation never reads these from process state; pass a config to the
    context or normaliser that needs it.
    """

    locale: str = 'en'
    default_locale: str = 'en'
    time_zone: str = 'UTC'

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> 'QueryConfig':
        """Build a config from MEMQUERY_* environment variables"""
        load_dotenv(dotenv_path)
        default_locale = os.getenv('MEMQUERY_DEFAULT_LOCALE', 'en')
        config = cls(
            locale=os.getenv('MEMQUERY_LOCALE', default_locale),
            default_locale=default_locale,
            time_zone=os.getenv('MEMQUERY_TIME_ZONE', 'UTC'),
        )
        # Fail early on a zone name dateutil does not know
        config.tzinfo
        return config

    @property
    def tzinfo(self) -> tzinfo:
        zone = tz.UTC if self.time_zone.upper() == 'UTC' else tz.gettz(self.time_zone)
        if zone is None:
            raise InvalidConfiguration(f"Unknown time zone: {self.time_zone!r}")
        return zone


DEFAULT_CONFIG = QueryConfig()
