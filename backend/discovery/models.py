"""Pydantic models for device discovery."""

from pydantic import BaseModel


class Device(BaseModel):
    """A MediaBox player seen on the LAN."""
    id: str
    name: str
    address: str  # used to open the command connection
    last_seen: float  # Unix timestamp


class Announcement(BaseModel):
    """One parsed announcement datagram. Never stored."""
    id: str
    name: str
    address: str
    features: frozenset[str] = frozenset()


class Rejected(BaseModel):
    """Why a datagram was not accepted as an announcement."""
    reason: str
