"""
Announcement parser.

Turns one raw datagram into an Announcement, or a Rejected value
explaining why it was dropped. Wire format:

    MediaBox:<id>:<name>:<address>:<feature>[,<feature>...]

Only devices advertising the PLAYER feature are accepted.
"""

from config import ANNOUNCE_PREFIX, PLAYER_FEATURE
from discovery.models import Announcement, Rejected

FIELD_ID = 1
FIELD_NAME = 2
FIELD_ADDRESS = 3
FIELD_FEATURES = 4
MIN_FIELDS = 5

# Space and every control character, so NUL padding is trimmed too.
_TRIM_CHARS = "".join(chr(c) for c in range(0x21))


def parse_announcement(data: bytes) -> Announcement | Rejected:
    """Parse a datagram payload. Never raises."""
    text = data.decode("utf-8", errors="replace").strip(_TRIM_CHARS)

    if not text.startswith(ANNOUNCE_PREFIX):
        return Rejected(reason="missing prefix")

    fields = text.split(":")
    if len(fields) < MIN_FIELDS:
        return Rejected(reason=f"expected {MIN_FIELDS} fields, got {len(fields)}")

    features = frozenset(
        f.strip() for f in fields[FIELD_FEATURES].split(",") if f.strip()
    )
    if PLAYER_FEATURE not in features:
        return Rejected(reason="not a player")

    return Announcement(
        id=fields[FIELD_ID],
        name=fields[FIELD_NAME],
        address=fields[FIELD_ADDRESS],
        features=features,
    )
