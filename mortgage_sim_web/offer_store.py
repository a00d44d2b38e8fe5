"""Persistence layer for mortgage offers and comparison settings.

This module keeps every visitor's offers and settings in an external
database instead of browser cookies. It defaults to SQLite for local
development, but accepts any SQLAlchemy-compatible URL (e.g.
PostgreSQL/MySQL). Rows store the same JSON shapes used by workspace
import/export, so a stored workspace can be downloaded as-is.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Iterable, List

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from mortgage_sim.data_models import MortgageOffer, SimulationSettings, Workspace
from mortgage_sim.scenario_io import offer_from_dict, offer_to_dict, settings_from_dict, settings_to_dict

Base = declarative_base()


class OfferLimitError(ValueError):
    """Raised when more offers are stored than one user may keep."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OfferModel(Base):
    __tablename__ = "mortgage_offers"

    __table_args__ = (UniqueConstraint("user_token", "offer_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    offer_id = Column(String(128), nullable=False)
    user_token = Column(String(64), index=True, nullable=False)
    offer_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class SettingsModel(Base):
    __tablename__ = "simulation_settings"

    user_token = Column(String(64), primary_key=True)
    settings_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)


class OfferStore:
    """Database-backed store of offers and settings, keyed by user token."""

    def __init__(self, url: str, *, max_per_user: int = 20) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_offers(self, user_token: str) -> List[MortgageOffer]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows: Iterable[OfferModel] = session.execute(
                select(OfferModel)
                .where(OfferModel.user_token == user_token)
                .order_by(OfferModel.id.asc())
            ).scalars()
            return [offer_from_dict(json.loads(row.offer_json), i) for i, row in enumerate(rows)]

    def add_offer(self, user_token: str, offer: MortgageOffer) -> None:
        """Insert ``offer``, replacing any stored offer with the same id."""
        if not user_token:
            return
        with self._session_factory() as session:
            existing = self._find(session, user_token, offer.id)
            if existing is not None:
                existing.offer_json = json.dumps(offer_to_dict(offer))
            else:
                session.add(
                    OfferModel(
                        offer_id=offer.id,
                        user_token=user_token,
                        offer_json=json.dumps(offer_to_dict(offer)),
                    )
                )
            session.commit()
        self._trim_user(user_token)

    def remove_offer(self, user_token: str, offer_id: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            row = self._find(session, user_token, offer_id)
            if row is not None:
                session.delete(row)
                session.commit()

    def clear_offers(self, user_token: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(OfferModel.__table__.delete().where(OfferModel.user_token == user_token))
            session.commit()

    def load_settings(self, user_token: str) -> SimulationSettings:
        if not user_token:
            return SimulationSettings()
        with self._session_factory() as session:
            row = session.get(SettingsModel, user_token)
            if row is None:
                return SimulationSettings()
            return settings_from_dict(json.loads(row.settings_json))

    def save_settings(self, user_token: str, settings: SimulationSettings) -> None:
        if not user_token:
            return
        payload = json.dumps(settings_to_dict(settings))
        with self._session_factory() as session:
            row = session.get(SettingsModel, user_token)
            if row is None:
                session.add(SettingsModel(user_token=user_token, settings_json=payload))
            else:
                row.settings_json = payload
            session.commit()

    def load_workspace(self, user_token: str) -> Workspace:
        return Workspace(offers=self.list_offers(user_token), settings=self.load_settings(user_token))

    def replace_workspace(self, user_token: str, workspace: Workspace) -> None:
        """Replace all stored offers and settings with ``workspace``.

        Raises
        ------
        OfferLimitError
            If the workspace holds more offers than one user may store. Nothing
            is changed in that case.
        """
        if self._max_per_user > 0 and len(workspace.offers) > self._max_per_user:
            raise OfferLimitError(
                f"Workspace has {len(workspace.offers)} offers; at most {self._max_per_user} can be stored"
            )
        self.clear_offers(user_token)
        for offer in workspace.offers:
            self.add_offer(user_token, offer)
        self.save_settings(user_token, workspace.settings)

    @staticmethod
    def _find(session, user_token: str, offer_id: str):
        return session.execute(
            select(OfferModel).where(OfferModel.user_token == user_token, OfferModel.offer_id == offer_id)
        ).scalar_one_or_none()

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(OfferModel)
                .where(OfferModel.user_token == user_token)
                .order_by(OfferModel.id.desc())
            ).scalars().all()
            if len(rows) <= self._max_per_user:
                return
            for row in rows[self._max_per_user :]:
                session.delete(row)
            session.commit()


def create_store_from_env(url: str | None) -> OfferStore:
    return OfferStore(url or "sqlite:///mortgage_offers.sqlite3")
