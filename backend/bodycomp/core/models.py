"""Core records passed between the directory, the pipeline and the routes."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Account:
    id: int
    username: str
    email: str
    password_hash: str = field(repr=False)
    age: Optional[int] = None
    gender: Optional[str] = None
    height: Optional[float] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "Account":
        return cls(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            password_hash=row["password_hash"],
            age=row["age"],
            gender=row["gender"],
            height=row["height"],
            created_at=row["created_at"],
        )

    def public(self) -> dict:
        """Non-secret fields, safe to return to the account owner."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "age": self.age,
            "gender": self.gender,
            "height": self.height,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class NewAccount:
    """Registration input after hashing; what the directory inserts."""

    username: str
    email: str
    password_hash: str = field(repr=False)
    age: Optional[int] = None
    gender: Optional[str] = None
    height: Optional[float] = None


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    username: str
    expires_at: datetime


@dataclass(frozen=True)
class StatEntry:
    measured_at: datetime
    weight: Optional[float] = None
    body_fat: Optional[float] = None
    muscle_mass: Optional[float] = None
    water: Optional[float] = None
    bmi: Optional[float] = None

    @classmethod
    def from_row(cls, row) -> "StatEntry":
        return cls(
            measured_at=row["measured_at"],
            weight=row["weight"],
            body_fat=row["body_fat"],
            muscle_mass=row["muscle_mass"],
            water=row["water"],
            bmi=row["bmi"],
        )

    def as_dict(self) -> dict:
        return {
            "measured_at": self.measured_at.isoformat(),
            "weight": self.weight,
            "body_fat": self.body_fat,
            "muscle_mass": self.muscle_mass,
            "water": self.water,
            "bmi": self.bmi,
        }
