"""
System initialization functions
Loads settings, prepares folders and wires the client and interpreter together
"""

import os
from dataclasses import dataclass

from tellocmd.config import Settings, SETTINGS_FILE, TELLO_IP, FFMPEG_PATH, VIDEO_EXTENSION
from tellocmd.console import print_help
from tellocmd.drone import TelloClient
from tellocmd.interpreter import CommandInterpreter, timestamp_file_name
from tellocmd.logger import get_logger


@dataclass
class AppSettings:
    ip: str = TELLO_IP
    speed: int = 50
    photo_folder: str = ""
    video_folder: str = ""
    ffmpeg_path: str = FFMPEG_PATH
    debug: bool = False
    record_on_connect: bool = False
    stream_on_connect: bool = False
    log_level: str = "INFO"


def load_app_settings(path=SETTINGS_FILE):
    """Read the settings file, adding defaults for any missing key"""
    settings = Settings(path).load()
    defaults = AppSettings()
    return AppSettings(
        ip=settings.get_or_add("drone.ip", defaults.ip),
        speed=settings.get_or_add("drone.speed", defaults.speed),
        photo_folder=settings.get_or_add("video.photo_folder", defaults.photo_folder),
        video_folder=settings.get_or_add("video.video_folder", defaults.video_folder),
        ffmpeg_path=settings.get_or_add("video.ffmpeg_path", defaults.ffmpeg_path),
        debug=settings.get_or_add("debug", defaults.debug),
        record_on_connect=settings.get_or_add("video.record_on_connect", defaults.record_on_connect),
        stream_on_connect=settings.get_or_add("video.stream_on_connect", defaults.stream_on_connect),
        log_level=settings.get_or_add("log.level", defaults.log_level),
    )


def create_directories(app_settings, logger=None):
    """Create the photo and video folders"""
    logger = logger or get_logger(__name__)
    for directory in (app_settings.photo_folder, app_settings.video_folder):
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
            logger.info("Created directory: %s", directory)


def initialize_client(app_settings, logger=None):
    """Build the client and interpreter from settings (no network traffic yet)"""
    logger = logger or get_logger(__name__)
    client = TelloClient(app_settings.ip, ffmpeg_path=app_settings.ffmpeg_path,
                         debug=app_settings.debug, logger=logger)
    try:
        client.set_speed(app_settings.speed)
    except ValueError as e:
        logger.error("Invalid speed setting: %s", e)
    interpreter = CommandInterpreter(client, photo_folder=app_settings.photo_folder,
                                     video_folder=app_settings.video_folder,
                                     help_printer=print_help, logger=logger)
    return client, interpreter


def connect_client(client, app_settings, logger=None):
    """Connect, apply the configured speed and start video if requested"""
    logger = logger or get_logger(__name__)
    logger.info("Connecting to Tello")
    if not client.connect():
        return False
    try:
        client.set_speed(app_settings.speed)
    except ValueError as e:
        logger.error("Invalid speed setting: %s", e)
    if app_settings.record_on_connect:
        client.start_or_stop_video_recording(timestamp_file_name(app_settings.video_folder, VIDEO_EXTENSION))
    elif app_settings.stream_on_connect:
        client.start_or_stop_video_streaming()
    return True


def cleanup_client(client, logger=None):
    """Disconnect, landing and stopping video first"""
    logger = logger or get_logger(__name__)
    try:
        client.disconnect()
        logger.info("Disconnected from Tello")
    except Exception as e:
        logger.error("Error during cleanup: %s", e)
