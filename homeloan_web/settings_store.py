"""Persistence layer for the loan calculator settings.

The admin screens edit one settings document (fees, financing options, the
special down-payment rule). It is kept as JSON in a single table row so the
web app can run against SQLite locally or any SQLAlchemy-compatible URL
(e.g. PostgreSQL) in deployment. Documents are validated and normalised
through ``homeloan.settings`` before they are stored.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from homeloan.data_models import LoanCalculatorSettings
from homeloan.settings import DEFAULT_SETTINGS, merge_settings_dict, settings_from_dict, settings_to_dict

logger = logging.getLogger(__name__)

Base = declarative_base()

SETTINGS_KEY = "loan-calculator"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CalculatorSettingsModel(Base):
    __tablename__ = "calculator_settings"

    key = Column(String(64), primary_key=True)
    settings_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)


class SettingsStore:
    """Database-backed settings document."""

    def __init__(self, url: str, *, key: str = SETTINGS_KEY) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._key = key

    def get_settings_dict(self) -> Dict[str, Any]:
        """The stored document, or the defaults when nothing was saved yet."""
        with self._session_factory() as session:
            row = session.get(CalculatorSettingsModel, self._key)
            if row is None:
                return settings_to_dict(DEFAULT_SETTINGS)
            return json.loads(row.settings_json)

    def get_settings(self) -> LoanCalculatorSettings:
        return settings_from_dict(self.get_settings_dict())

    def save_settings(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate and store ``data``; returns the normalised document.

        Raises ``ConfigurationError`` for documents that cannot be parsed;
        nothing is written in that case.
        """
        document = settings_to_dict(settings_from_dict(data))
        with self._session_factory() as session:
            row = session.get(CalculatorSettingsModel, self._key)
            if row is None:
                session.add(CalculatorSettingsModel(key=self._key, settings_json=json.dumps(document)))
            else:
                row.settings_json = json.dumps(document)
            session.commit()
        logger.info("Saved calculator settings")
        return document

    def update_settings(self, updates: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge ``updates`` into the current document and store it."""
        return self.save_settings(merge_settings_dict(self.get_settings_dict(), updates))

    def reset_settings(self) -> Dict[str, Any]:
        with self._session_factory() as session:
            row = session.get(CalculatorSettingsModel, self._key)
            if row is not None:
                session.delete(row)
                session.commit()
        logger.info("Calculator settings reset to defaults")
        return settings_to_dict(DEFAULT_SETTINGS)


def create_store_from_env(url: str | None) -> SettingsStore:
    return SettingsStore(url or "sqlite:///calculator_settings.sqlite3")
