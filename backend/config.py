"""Application-wide configuration constants."""

import os
from pathlib import Path

# --- Storage ---
CONFIG_DIR = Path(
    os.environ.get("MEDIABOX_REMOTE_HOME", Path.home() / ".mediabox-remote")
)
SETTINGS_FILE = CONFIG_DIR / "settings.json"

# --- Discovery ---
ANNOUNCE_PREFIX = "MediaBox:"
ANNOUNCE_PORT = 49550  # UDP
ANNOUNCE_INTERVAL = 10  # seconds between announcement bursts
ANNOUNCE_REPEAT = 3  # datagrams per burst
PLAYER_FEATURE = "PLAYER"
RECV_BUFFER_SIZE = 15000
DEVICE_TTL = 15  # seconds before a device is considered gone
REAPER_PERIOD = 10  # seconds between expiry passes
LISTEN_BACKOFF = 10  # seconds before rebinding after a socket error

# --- Remote control ---
COMMAND_PORT = 2048  # TCP
CONNECT_TIMEOUT = 10.0
SHORT_RANGE_TARGET = "bluetooth"  # "device" value that selects RFCOMM
SHORT_RANGE_PEER = "00:02:72:13:75:93"
SHORT_RANGE_CHANNEL = 1
SHORT_RANGE_SETTLE_TIMEOUT = 12.0  # max wait for a running inquiry to finish

# --- API ---
API_HOST = "0.0.0.0"
API_PORT = 8765
WS_SEND_TIMEOUT = 2.0  # seconds a client gets to take one event
