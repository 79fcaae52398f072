"""
Input controller for the keyboard pad
Turns pressed keys into RC channels and command keys into interpreter commands
"""

from tellocmd.config import SPEED_STEP, MIN_SPEED, MAX_SPEED
from tellocmd.logger import get_logger

# key name -> (left/right, forward/back, up/down, yaw) direction
RC_KEYS = {
    "up": (0, 1, 0, 0),
    "down": (0, -1, 0, 0),
    "left": (-1, 0, 0, 0),
    "right": (1, 0, 0, 0),
    "w": (0, 0, 1, 0),
    "s": (0, 0, -1, 0),
    "a": (0, 0, 0, -1),
    "d": (0, 0, 0, 1),
}

COMMAND_KEYS = {
    "t": "takeoff",
    "l": "land",
    "e": "emergency",
    "p": "photo",
    "r": "video",
    "v": "stream",
}


def rc_channels(keys_pressed, speed):
    """Sum the directions of all pressed keys and scale them by speed"""
    channels = [0, 0, 0, 0]
    for name, direction in RC_KEYS.items():
        if keys_pressed.get(name):
            for i in range(4):
                channels[i] += direction[i]
    return [int(speed * max(-1, min(1, c))) for c in channels]


class KeyboardPad:
    """Keeps the last RC channels sent so unchanged input is not resent"""

    def __init__(self, client, interpreter, logger=None):
        self.client = client
        self.interpreter = interpreter
        self.logger = logger or get_logger(__name__)
        self.channels = [0, 0, 0, 0]

    def handle_keys(self, keys_pressed):
        """Send RC control when the pressed keys change the channels"""
        if not self.client.connected:
            return False
        channels = rc_channels(keys_pressed, self.client.speed)
        if channels == self.channels:
            return False
        self.channels = channels
        try:
            self.client.send_rc_control(*channels)
        except Exception as e:
            self.logger.error("RC control error: %s", e)
        return True

    def stop(self):
        """Zero all channels if any is moving"""
        if any(self.channels) and self.client.connected:
            self.channels = [0, 0, 0, 0]
            self.client.send_rc_control(0, 0, 0, 0)

    def handle_keyboard_input(self, key):
        """Handle a single key press"""
        try:
            if key == "c":
                self.toggle_connection()
            elif key == "+":
                self.change_speed(SPEED_STEP)
            elif key == "-":
                self.change_speed(-SPEED_STEP)
            elif key in COMMAND_KEYS:
                if self.client.connected:
                    self.interpreter.execute(COMMAND_KEYS[key])
        except Exception as e:
            self.logger.error("Keyboard input error: %s", e)

    def toggle_connection(self):
        if self.client.connected:
            self.client.disconnect()
        else:
            self.client.connect()

    def change_speed(self, step):
        speed = max(MIN_SPEED, min(MAX_SPEED, self.client.speed + step))
        if speed != self.client.speed:
            self.client.set_speed(speed)
            self.logger.info("Speed: %s", self.client.speed)
