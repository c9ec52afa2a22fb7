"""
Database models for OddsForge
SQLAlchemy ORM; PostgreSQL in production, SQLite for local runs and tests
"""

import os
from datetime import datetime

from dotenv import load_dotenv
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///oddsforge.db")

Base = declarative_base()


def make_engine(url: str = DATABASE_URL):
    """Engine for ``url``; in-memory SQLite shares one connection across threads."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return create_engine(url, pool_pre_ping=True, echo=False)


def make_session_factory(url: str = DATABASE_URL, create_tables: bool = True):
    engine = make_engine(url)
    if create_tables:
        Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class TeamRow(Base):
    """Team with its current rating"""

    __tablename__ = "teams"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    sport = Column(String, nullable=False, index=True)
    league = Column(String, default="")
    rating = Column(Float, nullable=False)
    active = Column(Boolean, default=True)

    # Bumped on every rating write; updates compare-and-swap on it
    version = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)

    history = relationship("RatingHistoryRow", back_populates="team")


class MatchRow(Base):
    """Fixture or result"""

    __tablename__ = "matches"

    id = Column(String, primary_key=True)
    home_team_id = Column(String, ForeignKey("teams.id"), nullable=False, index=True)
    away_team_id = Column(String, ForeignKey("teams.id"), nullable=False, index=True)
    sport = Column(String, nullable=False)
    league = Column(String, default="")
    scheduled_at = Column(DateTime, nullable=False, index=True)
    status = Column(String, nullable=False, default="scheduled", index=True)
    neutral = Column(Boolean, default=False)

    # Filled after the match
    home_score = Column(Integer)
    away_score = Column(Integer)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    prediction = relationship("PredictionRow", back_populates="match", uselist=False)


class RatingHistoryRow(Base):
    """Append-only rating observations"""

    __tablename__ = "rating_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(String, ForeignKey("teams.id"), nullable=False, index=True)
    match_id = Column(String, index=True)
    timestamp = Column(DateTime, nullable=False, index=True)
    rating = Column(Float, nullable=False)

    team = relationship("TeamRow", back_populates="history")


class PredictionRow(Base):
    """Latest model prediction per match; regeneration overwrites"""

    __tablename__ = "predictions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(String, ForeignKey("matches.id"), nullable=False, unique=True)
    model_version = Column(String, default="ensemble_v1.0")

    home_probability = Column(Float, nullable=False)
    draw_probability = Column(Float)  # NULL for sports without draws
    away_probability = Column(Float, nullable=False)
    confidence = Column(Float, nullable=False)

    # Per-signal probabilities and weights
    components = Column(JSON)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    match = relationship("MatchRow", back_populates="prediction")


def init_db(bind=None):
    """Create all tables"""
    Base.metadata.create_all(bind=bind or engine)
