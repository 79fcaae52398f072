"""
Text command interpreter
Maps typed or scripted lines to client calls: flight moves with timeouts
derived from speed, photo/video toggles, sleep, command files and raw
protocol passthrough
"""

import os
import time
from datetime import datetime

from tellocmd.config import (
    DEFAULT_DISTANCE, DEFAULT_ANGLE, DEFAULT_SLEEP, DEFAULT_COMMAND_FILE,
    TIMESTAMP_FORMAT, PHOTO_EXTENSION, VIDEO_EXTENSION, RAW_COMMAND_TIMEOUT_MS,
    QUERY_TIMEOUT_MS, RC_LIMIT
)
from tellocmd.logger import get_logger
from tellocmd.protocol import timeout_by_distance, timeout_by_angle

END_COMMAND = "end"
MOVE_COMMANDS = ("up", "down", "left", "right", "forward", "back")
ROTATE_COMMANDS = ("cw", "ccw")
RC_SCALING_COMMAND = "usetellospeedforrccontrol"


def timestamp_file_name(folder, ext, now=None):
    """File name from local time with millisecond precision"""
    now = now or datetime.now()
    stamp = now.strftime(TIMESTAMP_FORMAT) + "%03d" % (now.microsecond // 1000)
    return os.path.join(folder or "", f"{stamp}.{ext}")


def command_value(command, default, convert):
    """Second space-delimited token converted, or default when missing or malformed"""
    parts = command.split()
    if len(parts) < 2:
        return default
    try:
        return convert(parts[1])
    except ValueError:
        return default


def parse_bool(text):
    lowered = text.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Not a boolean: {text}")


def scale_rc_channel(value, speed):
    """Multiply a channel by speed, truncate toward zero and clamp to the RC range"""
    scaled = int(float(value) * speed)
    return max(-RC_LIMIT, min(RC_LIMIT, scaled))


class CommandInterpreter:
    """Executes text commands against a TelloClient"""

    def __init__(self, client, photo_folder="", video_folder="", use_speed_for_rc=True,
                 default_command_file=DEFAULT_COMMAND_FILE, sleep=time.sleep,
                 help_printer=None, logger=None):
        self.client = client
        self.photo_folder = photo_folder
        self.video_folder = video_folder
        self.use_speed_for_rc = use_speed_for_rc
        self.default_command_file = default_command_file
        self.sleep = sleep
        self.help_printer = help_printer
        self.logger = logger or get_logger(__name__)
        self.last_ok = True
        self.last_reply = None

    def execute(self, line):
        """
        Run one command line.
        Returns False only when the caller should stop (end or no input);
        failures are logged and recorded in last_ok.
        """
        if line is None:
            return False
        command = line.strip().lower()
        if command == END_COMMAND:
            return False

        self.last_reply = None
        try:
            ok = self._dispatch(command, line.strip())
            self.last_ok = ok is not False
        except Exception as e:
            self.last_ok = False
            self.logger.error("Exception executing '%s': %s", command, e)
        return True

    def _dispatch(self, command, raw):
        if not command:
            return True
        if command == "land":
            return self.client.land()
        if command == "takeoff":
            return self.client.takeoff()
        if command == "emergency":
            return self.client.emergency()
        if command in ("p", "photo"):
            return self.client.save_photo(timestamp_file_name(self.photo_folder, PHOTO_EXTENSION))
        if command in ("v", "video"):
            return self.client.start_or_stop_video_recording(timestamp_file_name(self.video_folder, VIDEO_EXTENSION))
        if command in ("s", "stream"):
            return self.client.start_or_stop_video_streaming()
        if command == "help":
            if self.help_printer:
                self.help_printer()
            return True
        if command == "streamon":
            return self.client.stream_on()
        if command == "streamoff":
            self.client.stop_video()
            return self.client.stream_off()
        if command == "speed?":
            return self.read_speed()
        if command.endswith("?"):
            return self.query(command)

        name = command.split()[0]
        if name == "sleep":
            self.sleep(command_value(command, DEFAULT_SLEEP, float))
            return True
        if name in ("run", "load"):
            return self.run_file(command_value(raw, self.default_command_file, str))
        if name in MOVE_COMMANDS:
            distance = command_value(command, DEFAULT_DISTANCE, int)
            timeout_ms = timeout_by_distance(distance, self.client.speed)
            return self.client.fly(name, distance, timeout_ms=timeout_ms)
        if name in ROTATE_COMMANDS:
            degree = command_value(command, DEFAULT_ANGLE, int)
            return self.client.rotate(name, degree, timeout_ms=timeout_by_angle(degree))
        if name == "rc":
            return self.rc_control(command)
        if name == "reboot":
            return self.client.send_message(command, wait_for_reply=False).ok
        if name == "speed":
            return self.set_speed(command)
        if name == RC_SCALING_COMMAND:
            self.use_speed_for_rc = command_value(command, True, parse_bool)
            self.logger.info("Use speed for RC control: %s", self.use_speed_for_rc)
            return True

        result = self.client.send_message(command, timeout_ms=RAW_COMMAND_TIMEOUT_MS)
        self.last_reply = result.reply
        return result.ok

    def query(self, command):
        reply = self.client.query(command, timeout_ms=QUERY_TIMEOUT_MS)
        self.last_reply = reply
        self.logger.info("%s %s", command, reply)
        return reply is not None

    def read_speed(self):
        speed = self.client.get_speed()
        self.last_reply = str(speed)
        self.logger.info("speed? %s", speed)
        return True

    def set_speed(self, command):
        speed = command_value(command, None, float)
        if speed is None:
            raise ValueError(f"Invalid speed: {command}")
        return self.client.set_speed(speed)

    def rc_control(self, command):
        if not self.use_speed_for_rc:
            return self.client.send_message(command, wait_for_reply=False).ok
        values = command.split()
        if len(values) != 5:
            raise ValueError(f"Invalid RC control: {command}")
        speed = self.client.speed
        channels = [scale_rc_channel(v, speed) for v in values[1:]]
        return self.client.send_rc_control(*channels)

    def run_file(self, file_name):
        """Execute every non-blank, non-comment line of a command file"""
        saved_rc_scaling = self.use_speed_for_rc
        self.logger.info("Loading command file: %s", file_name)
        try:
            with open(file_name, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue
                    self.execute(line)
            return True
        except OSError as e:
            self.logger.error("Exception loading command file %s: %s", file_name, e)
            return False
        finally:
            self.use_speed_for_rc = saved_rc_scaling
