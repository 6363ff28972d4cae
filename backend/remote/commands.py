"""Command vocabulary understood by a MediaBox player."""

from enum import Enum


class Command(str, Enum):
    MENU = "MENU"
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    BACK = "BACK"
    ENTER = "ENTER"
    STOP = "STOP"
    PLAY = "PLAY"
    INFO = "INFO"
    PREV = "PREV"
    NEXT = "NEXT"
    RW = "RW"
    FF = "FF"
    VOLUP = "VOLUP"
    VOLDOWN = "VOLDOWN"
    CLEAR = "CLEAR"


KEY_PREFIX = "KEY:"
URL_PREFIX = "URL:"


def key_command(char: str) -> str:
    """Build a KEY:<C> token for a single typed character."""
    if len(char) != 1 or char in "\r\n":
        raise ValueError(f"Expected a single character, got {char!r}")
    if not char.isascii():
        raise ValueError(f"Only ASCII keys can be sent, got {char!r}")
    return f"{KEY_PREFIX}{char.upper()}"


def url_command(url: str) -> str:
    """Build a URL:<url> token asking the player to open a stream."""
    url = url.strip()
    if not url or "\n" in url or "\r" in url:
        raise ValueError("URL must be a non-empty single line")
    if not url.isascii():
        raise ValueError("URL must be ASCII, percent-encode other characters")
    return f"{URL_PREFIX}{url}"


def is_valid_command(token: str) -> bool:
    if not token.isascii() or "\n" in token or "\r" in token:
        return False
    if token in Command._value2member_map_:
        return True
    if token.startswith(KEY_PREFIX):
        return len(token) == len(KEY_PREFIX) + 1
    if token.startswith(URL_PREFIX):
        return len(token) > len(URL_PREFIX)
    return False
