"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for nsaccounts happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL).

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved (table names, session lifetime, page sizes).

Table names are configuration, not module globals. Stores receive them through
accounts.schema.TableNames, so two Database instances in one process may point
at differently named tables.

Layer rule: core/ is the kernel. This module may not import from api/ or
accounts/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("nsaccounts.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'nsaccounts.db'}"

# 30 days
_DEFAULT_SESSION_SECONDS = 30 * 24 * 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    user_table: str = "user"
    session_table: str = "session"
    namespace_table: str = "namespace"

    # ------------------------------------------------------------------
    # Sessions and cookies
    # ------------------------------------------------------------------

    session_expire_seconds: int = _DEFAULT_SESSION_SECONDS
    cookie_name: str = "auth-user-token"
    cookie_httponly: bool = False
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Registration and listing
    # ------------------------------------------------------------------

    self_registration_enabled: bool = True
    default_page_size: int = 20
    max_page_size: int = 100

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject configurations the stores cannot work with.

        Session lifetime must be positive: the cookie max_age and the stored
        expired_at are both derived from it. The three table names must be
        distinct because they share one MetaData.
        """
        if self.session_expire_seconds <= 0:
            raise ValueError("SESSION_EXPIRE_SECONDS must be a positive number of seconds.")
        names = [self.user_table, self.session_table, self.namespace_table]
        if any(not n for n in names):
            raise ValueError("Table names must not be empty.")
        if len(set(names)) != len(names):
            raise ValueError(f"Table names must be distinct, got {names!r}.")
        if self.default_page_size <= 0 or self.max_page_size < self.default_page_size:
            raise ValueError("DEFAULT_PAGE_SIZE must be positive and not exceed MAX_PAGE_SIZE.")
        if not self.debug and not self.secure_cookies:
            logger.warning("SECURE_COOKIES is off outside debug mode; session cookies will be sent over plain HTTP.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
