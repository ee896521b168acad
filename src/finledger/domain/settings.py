"""Application configuration service."""

import logging

from finledger.database.base import Database
from finledger.domain.account import normalize_currency_code
from finledger.domain.entities import AppConfig

logger = logging.getLogger(__name__)


class SettingsService:
    """Read and update the single versioned configuration record."""

    def __init__(self, db: Database):
        """Initialize settings service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_config(self) -> AppConfig:
        """Return the configuration, creating defaults on first use."""
        return self.db.get_app_config()

    def primary_currency(self) -> str:
        """Currency that balances are reported in."""
        return self.db.get_app_config().primary_currency

    def set_primary_currency(self, code: str) -> AppConfig:
        """Change the primary currency.

        Raises:
            ValidationError: If the code is not three letters
        """
        code = normalize_currency_code(code)
        config = self.db.update_app_config(primary_currency=code)
        logger.info("Primary currency set to %s (config version %s)", code, config.version)
        return config
