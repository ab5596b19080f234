from datetime import datetime
from enum import Enum
from typing import Dict, Optional
import uuid

from pydantic import BaseModel, Field, field_validator


def new_id() -> str:
    return uuid.uuid4().hex


class Identity(BaseModel):
    """Stable identity used to key quota records; email is only a lookup key"""
    id: str
    email: Optional[str] = None

    @field_validator('id')
    @classmethod
    def validate_id(cls, v):
        if not v or not v.strip():
            raise ValueError('Identity id cannot be empty')
        return v.strip()


class Team(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    players: int = 0
    matches: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Team name cannot be empty')
        return v.strip()

    @field_validator('players', 'matches', 'wins', 'losses', 'draws')
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError('Value must be non-negative')
        return v


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"


class Match(BaseModel):
    id: str = Field(default_factory=new_id)
    home_team_id: str
    away_team_id: str
    home_team: str = ""  # Display name at scheduling time
    away_team: str = ""
    home_score: int = 0
    away_score: int = 0
    date: str  # ISO format date, e.g. "2025-10-23"
    status: MatchStatus = MatchStatus.SCHEDULED

    @field_validator('date')
    @classmethod
    def validate_date(cls, v):
        try:
            datetime.fromisoformat(v)
            return v
        except (TypeError, ValueError):
            raise ValueError('Date must be in ISO format (e.g., "2025-10-23")')

    @field_validator('home_score', 'away_score')
    @classmethod
    def validate_score(cls, v):
        if v < 0:
            raise ValueError('Score must be non-negative')
        return v


class TeamTotals(BaseModel):
    """Roll-up of all team counters; derived, never stored"""
    players: int = 0
    matches: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0


class SubscriptionRecord(BaseModel):
    """Stored per-identity plan tier and usage counters"""
    user_id: str
    email: Optional[str] = None
    tier: str
    usage: Dict[str, int] = Field(default_factory=dict)
    created_at: str = Field(default_factory=lambda: datetime.now().isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.now().isoformat())


class SubscriptionSummary(BaseModel):
    user_id: str
    tier: str
    limits: Dict[str, int]
    usage: Dict[str, int]
    usage_percentages: Dict[str, float] = Field(default_factory=dict)
    near_limit: Dict[str, bool] = Field(default_factory=dict)


class User(BaseModel):
    """User account model"""
    id: str = Field(default_factory=new_id)
    username: str
    password_hash: str  # Hashed password (using werkzeug's generate_password_hash)
    email: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now().strftime("%d %b %Y"))
    is_active: bool = True

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        if not v or not v.strip():
            raise ValueError('Username cannot be empty')
        v = v.strip()
        if len(v) < 3:
            raise ValueError('Username must be at least 3 characters')
        if ' ' in v:
            raise ValueError('Username cannot contain spaces')
        return v

    def identity(self) -> Identity:
        return Identity(id=self.id, email=self.email)
