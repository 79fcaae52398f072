"""
Configuration settings for the Tello command client
Protocol constants, defaults and the YAML settings file
"""

import os
import yaml

# Drone network (factory settings)
TELLO_IP = "192.168.10.1"
COMMAND_PORT = 8889
STATE_PORT = 8890
VIDEO_PORT = 11111
VIDEO_HOST = "0.0.0.0"
STATE_HOST = "0.0.0.0"

# Command channel
RECEIVE_BUFFER_SIZE = 1518
DEFAULT_TIMEOUT_MS = 2000
QUERY_TIMEOUT_MS = 1000
TAKEOFF_TIMEOUT_MS = 10000
LAND_TIMEOUT_MS = 10000
FLIP_TIMEOUT_MS = 5000
RAW_COMMAND_TIMEOUT_MS = 10000
TIMEOUT_MARGIN_MS = 2000
DEGREES_PER_SECOND = 30

# Telemetry
STATE_RECEIVE_TIMEOUT = 5.0  # seconds
STATE_JOIN_TIMEOUT = 2.0

# Drone limits
MIN_SPEED = 10
MAX_SPEED = 100
DEFAULT_SPEED = 100
RC_LIMIT = 100

# Interpreter defaults
DEFAULT_DISTANCE = 20
DEFAULT_ANGLE = 10
DEFAULT_SLEEP = 1.0
DEFAULT_COMMAND_FILE = "telloCommands.txt"
TIMESTAMP_FORMAT = "%Y-%m%d-%H%M-%S"
PHOTO_EXTENSION = "jpg"
VIDEO_EXTENSION = "avi"

# Video decoder
FFMPEG_PATH = "ffmpeg"
DECODER_STOP_TIMEOUT = 2.0
LIVE_VIEW_TITLE = "Tello"

# Keyboard pad
WINDOW_WIDTH = 480
WINDOW_HEIGHT = 360
FPS = 30
SPEED_STEP = 10
COMMAND_LOG_LINES = 8

# Settings file
SETTINGS_FILE = "TelloConfig.yaml"


class Settings:
    """Key-value settings stored in a YAML file, addressed with dotted keys"""

    def __init__(self, path=SETTINGS_FILE):
        self.path = path
        self._cfg = {}

    def load(self):
        """Read the settings file; a missing file leaves the settings empty"""
        if not os.path.exists(self.path):
            self._cfg = {}
            return self
        with open(self.path, "r", encoding="utf-8") as f:
            self._cfg = yaml.safe_load(f) or {}
        return self

    def save(self):
        d = os.path.dirname(self.path)
        if d:
            os.makedirs(d, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self._cfg, f, default_flow_style=False, sort_keys=True)

    def as_dict(self):
        return dict(self._cfg)

    def get(self, dotted_key, default=None):
        node = self._cfg
        if not dotted_key:
            return default
        for part in dotted_key.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def set(self, dotted_key, value):
        parts = dotted_key.split(".")
        node = self._cfg
        for p in parts[:-1]:
            if p not in node or not isinstance(node[p], dict):
                node[p] = {}
            node = node[p]
        node[parts[-1]] = value

    def get_or_add(self, dotted_key, default):
        """
        Return the stored value converted to the type of default.
        A missing key is added with the default and written back to the file.
        """
        missing = object()
        value = self.get(dotted_key, missing)
        if value is missing or value is None:
            self.set(dotted_key, default)
            self.save()
            return default
        return _coerce(value, default)


def _coerce(value, default):
    if default is None or isinstance(value, type(default)):
        return value
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    try:
        return type(default)(value)
    except (TypeError, ValueError):
        return default
