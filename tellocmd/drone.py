"""
Tello client
Session state machine on top of the command channel, the telemetry
listener and the video supervisor
"""

from dataclasses import dataclass

from tellocmd.config import (
    TELLO_IP, COMMAND_PORT, STATE_PORT, VIDEO_PORT, FFMPEG_PATH, DEFAULT_SPEED,
    MIN_SPEED, MAX_SPEED, DEFAULT_TIMEOUT_MS, QUERY_TIMEOUT_MS, TAKEOFF_TIMEOUT_MS,
    LAND_TIMEOUT_MS, FLIP_TIMEOUT_MS, STATE_RECEIVE_TIMEOUT
)
from tellocmd.logger import get_logger
from tellocmd.protocol import CommandChannel, TelloProtocolError, timeout_by_distance, timeout_by_angle
from tellocmd.telemetry import TelemetryCache, TelemetryListener
from tellocmd.video import VideoKind, VideoSupervisor

FLY_DIRECTIONS = ("up", "down", "left", "right", "forward", "back")
ROTATE_DIRECTIONS = ("cw", "ccw")
FLIP_DIRECTIONS = ("l", "r", "f", "b")


@dataclass
class Session:
    connected: bool = False
    flying: bool = False
    streaming: bool = False
    recording: bool = False
    speed: float = DEFAULT_SPEED


class TelloClient:
    """Protocol client for one drone"""

    def __init__(self, host=TELLO_IP, command_port=COMMAND_PORT, state_port=STATE_PORT,
                 video_port=VIDEO_PORT, ffmpeg_path=FFMPEG_PATH, debug=False,
                 state_receive_timeout=STATE_RECEIVE_TIMEOUT,
                 channel=None, telemetry=None, listener=None, video=None, logger=None):
        self.logger = logger or get_logger(__name__)
        self.session = Session()
        self.channel = channel if channel is not None else CommandChannel(host, command_port, logger=self.logger)
        self.telemetry = telemetry if telemetry is not None else TelemetryCache()
        if listener is None:
            listener = TelemetryListener(self.telemetry, port=state_port,
                                         receive_timeout=state_receive_timeout, logger=self.logger)
        self.listener = listener
        self.video = video or VideoSupervisor(self.stream_on, lambda: self.session.streaming,
                                              ffmpeg_path=ffmpeg_path, video_port=video_port,
                                              debug=debug, logger=self.logger)

    # Session flags

    @property
    def connected(self):
        return self.session.connected

    @property
    def flying(self):
        return self.session.flying

    @property
    def streaming(self):
        return self.session.streaming

    @property
    def recording(self):
        return self.video.recording

    @property
    def live_view(self):
        return self.video.live_view

    @property
    def speed(self):
        return self.session.speed

    # Raw access

    def send_message(self, message, wait_for_reply=True, timeout_ms=DEFAULT_TIMEOUT_MS, expected_reply="ok"):
        try:
            return self.channel.send(message, wait_for_reply, timeout_ms, expected_reply)
        except TelloProtocolError:
            self.session.flying = False
            raise

    def control(self, command, timeout_ms=DEFAULT_TIMEOUT_MS, wait_for_reply=True):
        """Send a control command; returns the raw reply"""
        return self.send_message(command, wait_for_reply, timeout_ms, "ok").reply

    def query(self, query, timeout_ms=QUERY_TIMEOUT_MS):
        """Send a '...?' query; returns the reply or None"""
        result = self.send_message(query, True, timeout_ms, None)
        if result.ok:
            return result.reply
        return None

    # Connection

    def connect(self):
        result = self.send_message("command")
        self.session.connected = result.ok
        if not result.ok:
            self.logger.error("Failed to connect to Tello")
            return False

        try:
            speed = self.get_speed()
            battery = self.get_battery()
            self.logger.info("Connected to Tello: battery=%s speed=%s", battery, speed)
        except Exception as e:
            self.logger.warning("Connected, but could not read speed/battery: %s", e)

        try:
            self.listener.start()
        except OSError as e:
            self.logger.error("Could not start telemetry listener: %s", e)
        return True

    def disconnect(self):
        """Land and stop the stream before releasing the sockets"""
        try:
            if self.session.flying:
                self.land()
        except TelloProtocolError as e:
            self.logger.error("Landing on disconnect: %s", e)
        try:
            self.video.stop()
            if self.session.streaming:
                self.stream_off()
        except TelloProtocolError as e:
            self.logger.error("Stream off on disconnect: %s", e)

        self.session.flying = False
        self.session.streaming = False
        self.session.recording = False
        self.listener.stop()
        self.session.connected = False
        self.channel.close()

    # Flight

    def takeoff(self):
        result = self.send_message("takeoff", timeout_ms=TAKEOFF_TIMEOUT_MS)
        self.session.flying = result.ok
        return result.ok

    def land(self):
        was_flying = self.session.flying
        result = self.send_message("land", timeout_ms=LAND_TIMEOUT_MS)
        if result.ok or not was_flying:
            self.session.flying = False
            return True
        return False

    def emergency(self):
        result = self.send_message("emergency", timeout_ms=LAND_TIMEOUT_MS)
        if result.ok:
            self.session.flying = False
        return result.ok

    def fly(self, direction, distance, timeout_ms=None):
        if direction not in FLY_DIRECTIONS:
            raise ValueError(f"Invalid direction: {direction}")
        if timeout_ms is None:
            timeout_ms = timeout_by_distance(distance, self.session.speed)
        return self.send_message(f"{direction} {distance}", timeout_ms=timeout_ms).ok

    def up(self, distance):
        return self.fly("up", distance)

    def down(self, distance):
        return self.fly("down", distance)

    def left(self, distance):
        return self.fly("left", distance)

    def right(self, distance):
        return self.fly("right", distance)

    def forward(self, distance):
        return self.fly("forward", distance)

    def back(self, distance):
        return self.fly("back", distance)

    def rotate(self, direction, degree, timeout_ms=None):
        if direction not in ROTATE_DIRECTIONS:
            raise ValueError(f"Invalid rotation: {direction}")
        if timeout_ms is None:
            timeout_ms = timeout_by_angle(degree)
        return self.send_message(f"{direction} {degree}", timeout_ms=timeout_ms).ok

    def clockwise(self, degree):
        return self.rotate("cw", degree)

    def counter_clockwise(self, degree):
        return self.rotate("ccw", degree)

    def flip(self, direction):
        if direction not in FLIP_DIRECTIONS:
            raise ValueError(f"Invalid flip: {direction}")
        return self.send_message(f"flip {direction}", timeout_ms=FLIP_TIMEOUT_MS).ok

    def flip_left(self):
        return self.flip("l")

    def flip_right(self):
        return self.flip("r")

    def flip_forward(self):
        return self.flip("f")

    def flip_back(self):
        return self.flip("b")

    def send_rc_control(self, left_right, forward_back, up_down, yaw):
        """RC channels are sent without waiting for a reply"""
        return self.send_message(f"rc {left_right} {forward_back} {up_down} {yaw}", wait_for_reply=False).ok

    def reboot(self):
        return self.send_message("reboot", wait_for_reply=False).ok

    # Settings and queries

    def get_speed(self):
        """Read the speed setting from the drone; keeps the cached value on failure"""
        reply = self.query("speed?")
        try:
            speed = float(reply)
        except (TypeError, ValueError):
            speed = None
        if speed is not None and MIN_SPEED <= speed <= MAX_SPEED:
            self.session.speed = speed
        else:
            self.logger.warning("Invalid speed reply: %r", reply)
        return self.session.speed

    def set_speed(self, value):
        value = float(value)
        if not MIN_SPEED <= value <= MAX_SPEED:
            raise ValueError(f"Speed must be between {MIN_SPEED} and {MAX_SPEED}: {value}")
        if not self.session.connected:
            self.session.speed = value
            return True
        result = self.send_message(f"speed {int(value)}")
        if result.ok:
            self.session.speed = value
        return result.ok

    def get_battery(self):
        reply = self.query("battery?")
        try:
            return int(reply)
        except (TypeError, ValueError):
            return None

    # Video transport

    def stream_on(self):
        result = self.send_message("streamon")
        self.session.streaming = result.ok
        return result.ok

    def stream_off(self):
        result = self.send_message("streamoff")
        if result.ok:
            self.session.streaming = False
        return result.ok

    def start_or_stop(self, kind, target=None):
        ok = self.video.start_or_stop(kind, target)
        self.session.recording = self.video.recording
        return ok

    def save_photo(self, file_name):
        return self.start_or_stop(VideoKind.PHOTO, file_name)

    def start_or_stop_video_recording(self, file_name):
        return self.start_or_stop(VideoKind.RECORDING, file_name)

    def start_or_stop_video_streaming(self):
        return self.start_or_stop(VideoKind.STREAMING)

    def stop_video(self):
        self.video.stop()
        self.session.recording = False

    # Telemetry

    def state(self, key, default=None):
        return self.telemetry.get(key, default)

    def state_int(self, key, default=None):
        return self.telemetry.get_int(key, default)

    def state_float(self, key, default=None):
        return self.telemetry.get_float(key, default)

    @property
    def height(self):
        return self.state_int("h")

    @property
    def battery_level(self):
        return self.state_int("bat")

    @property
    def flight_time(self):
        return self.state_int("time")

    @property
    def tof(self):
        return self.state_int("tof")

    @property
    def temperature(self):
        low = self.state_float("templ")
        high = self.state_float("temph")
        if low is None or high is None:
            return None
        return (low + high) / 2
