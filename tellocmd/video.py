"""
Video process supervisor
Launches ffmpeg against the drone's UDP video feed for photos, recordings
and the live view window, keeping at most one decoder alive
"""

import enum
import subprocess
import threading

from tellocmd.config import FFMPEG_PATH, VIDEO_HOST, VIDEO_PORT, DECODER_STOP_TIMEOUT, LIVE_VIEW_TITLE
from tellocmd.logger import get_logger


class VideoKind(enum.Enum):
    PHOTO = "photo"
    RECORDING = "recording"
    STREAMING = "streaming"


class VideoSupervisor:
    """
    Owns the single external decoder process.

    recording and live_view are independent toggles on the same video
    transport. While recording, the recorder owns the decoder; live view
    resumes as a bare decoder once the recording stops.
    """

    def __init__(self, enable_stream, is_streaming, ffmpeg_path=FFMPEG_PATH,
                 video_port=VIDEO_PORT, debug=False, popen=subprocess.Popen, logger=None):
        self.enable_stream = enable_stream
        self.is_streaming = is_streaming
        self.ffmpeg_path = ffmpeg_path
        self.video_port = video_port
        self.debug = debug
        self.popen = popen
        self.logger = logger or get_logger(__name__)
        self.recording = False
        self.live_view = False
        self.current_kind = None
        self.current_target = None
        self._process = None
        self._lock = threading.Lock()

    @property
    def process(self):
        return self._process

    @property
    def decoder_alive(self):
        p = self._process
        return p is not None and p.poll() is None

    def start_or_stop(self, kind, target=None):
        """Take a photo, or toggle recording / live view"""
        if kind == VideoKind.PHOTO:
            return self.take_photo(target)
        if kind == VideoKind.RECORDING:
            if self.recording:
                return self.stop_recording()
            return self.start_recording(target)
        if kind == VideoKind.STREAMING:
            if self.live_view:
                return self.stop_live_view()
            return self.start_live_view()
        raise ValueError(f"Unknown video kind: {kind}")

    def take_photo(self, target):
        with self._lock:
            if not self._ensure_stream():
                return False
            self._stop_decoder()
            self.recording = False
            self.logger.info("Saving photo to file: %s", target)
            launched = self._launch(VideoKind.PHOTO, ["-frames:v", "1"], target)
            if launched and self.live_view:
                threading.Thread(target=self._resume_live_view, args=(self._process,),
                                 daemon=True, name="Photo Watcher").start()
            return launched

    def start_recording(self, target):
        with self._lock:
            if not self._ensure_stream():
                return False
            self._stop_decoder()
            self.logger.info("Saving video to file: %s", target)
            self.recording = self._launch(VideoKind.RECORDING, [], target)
            return self.recording

    def stop_recording(self):
        with self._lock:
            self.recording = False
            self._stop_decoder()
            self.logger.info("Stopped video recording")
            if self.live_view:
                return self._launch_live_view()
            return True

    def start_live_view(self):
        with self._lock:
            if not self._ensure_stream():
                return False
            if self.recording and self.decoder_alive:
                self.live_view = True
                self.logger.info("Live view will start when the recording stops")
                return True
            self._stop_decoder()
            self.logger.info("Starting video streaming")
            self.live_view = self._launch_live_view()
            return self.live_view

    def stop_live_view(self):
        with self._lock:
            self.live_view = False
            if self.current_kind == VideoKind.STREAMING:
                self._stop_decoder()
            self.logger.info("Stopped video streaming")
            return True

    def stop(self):
        """Kill the decoder and clear both toggles"""
        with self._lock:
            self.recording = False
            self.live_view = False
            self._stop_decoder()

    def _ensure_stream(self):
        if self.is_streaming():
            return True
        if self.enable_stream():
            return True
        self.logger.error("Could not enable the video stream")
        return False

    def _resume_live_view(self, photo):
        """Bring the viewer back once a photo taken during live view is written"""
        photo.wait()
        with self._lock:
            # anything started since the photo owns the decoder now
            if self._process is photo and photo.poll() is not None and self.live_view:
                self.logger.info("Photo saved, resuming video streaming")
                self.live_view = self._launch_live_view()

    def _launch_live_view(self):
        return self._launch(VideoKind.STREAMING, ["-f", "sdl"], LIVE_VIEW_TITLE)

    def build_command(self, options, target):
        cmd = [self.ffmpeg_path, "-i", f"udp://{VIDEO_HOST}:{self.video_port}"]
        cmd.extend(options)
        if target:
            cmd.append(target)
        return cmd

    def _launch(self, kind, options, target):
        cmd = self.build_command(options, target)
        self.logger.info("Starting: %s", " ".join(cmd))
        try:
            if self.debug:
                process = self.popen(cmd, stdin=subprocess.DEVNULL, stdout=subprocess.PIPE,
                                     stderr=subprocess.STDOUT, text=True, bufsize=1)
            else:
                process = self.popen(cmd, stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL,
                                     stderr=subprocess.DEVNULL)
        except OSError as e:
            self.logger.error("Failed to start %s: %s", self.ffmpeg_path, e)
            self._process = None
            self.current_kind = None
            self.current_target = None
            return False

        self._process = process
        self.current_kind = kind
        self.current_target = target
        if self.debug and getattr(process, "stdout", None) is not None:
            threading.Thread(target=self._output_loop, args=(process,), daemon=True, name="Decoder Output").start()
        return True

    def _stop_decoder(self):
        p = self._process
        self._process = None
        self.current_kind = None
        self.current_target = None
        if p is None or p.poll() is not None:
            return
        try:
            p.terminate()
            p.wait(timeout=DECODER_STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            p.kill()
            p.wait(timeout=DECODER_STOP_TIMEOUT)
        except OSError as e:
            self.logger.error("Error stopping decoder: %s", e)

    def _output_loop(self, process):
        try:
            for line in process.stdout:
                self.logger.debug("ffmpeg: %s", line.rstrip())
        except (OSError, ValueError):
            pass
