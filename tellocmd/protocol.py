"""
Command channel for the Tello text protocol
Sends one ASCII command at a time over UDP and classifies the reply
"""

import errno
import math
import socket
import threading
from dataclasses import dataclass
from typing import Optional

from tellocmd.config import (
    TELLO_IP, COMMAND_PORT, RECEIVE_BUFFER_SIZE, DEFAULT_TIMEOUT_MS,
    TIMEOUT_MARGIN_MS, DEGREES_PER_SECOND
)
from tellocmd.logger import get_logger

TIMEOUT_ERROR_CODE = errno.ETIMEDOUT
FATAL_REPLIES = ("error auto land", "error motor stop")
UNKNOWN_COMMAND_REPLY = "unknown command"


class TelloError(Exception):
    pass


class TelloProtocolError(TelloError):
    """The drone reported that it landed by itself or stopped its motors"""

    def __init__(self, message, reply):
        super().__init__(f"Tello error: {reply} (command: {message})")
        self.message = message
        self.reply = reply


@dataclass
class CommandResult:
    ok: bool
    reply: Optional[str] = None
    error_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def timed_out(self) -> bool:
        return self.error_code == TIMEOUT_ERROR_CODE


def timeout_by_distance(distance, speed):
    """Travel time at speed (cm/s) plus a safety margin, in milliseconds"""
    return int(math.floor(distance / speed * 1000)) + TIMEOUT_MARGIN_MS


def timeout_by_angle(degree):
    return int(math.floor(degree / DEGREES_PER_SECOND * 1000)) + TIMEOUT_MARGIN_MS


class CommandChannel:
    """
    Owns the outbound command socket.

    Only one command is in flight at a time. Callers are expected not to
    overlap commands; a lock around send and receive keeps concurrent
    callers from reading each other's replies.
    """

    def __init__(self, host=TELLO_IP, port=COMMAND_PORT, local_port=0, logger=None):
        self.address = (host, port)
        self.local_port = local_port
        self.logger = logger or get_logger(__name__)
        self._sock = None
        self._lock = threading.Lock()
        self._command_listeners = []
        self._result_listeners = []

    def add_command_listener(self, callback):
        """callback(message) before every send"""
        self._command_listeners.append(callback)

    def add_result_listener(self, callback):
        """callback(message, result) after every reply, timeout or fire-and-forget send"""
        self._result_listeners.append(callback)

    def remove_listener(self, callback):
        for listeners in (self._command_listeners, self._result_listeners):
            if callback in listeners:
                listeners.remove(callback)

    @property
    def is_open(self):
        return self._sock is not None

    def open(self):
        if self._sock is None:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sock.bind(("", self.local_port))
                sock.connect(self.address)
            except OSError:
                sock.close()
                raise
            self._sock = sock
            self.logger.debug("Command socket %s -> %s:%s", sock.getsockname(), *self.address)
        return self._sock

    def close(self):
        with self._lock:
            if self._sock is not None:
                try:
                    self._sock.close()
                finally:
                    self._sock = None

    def send(self, message, wait_for_reply=True, timeout_ms=DEFAULT_TIMEOUT_MS, expected_reply="ok"):
        """
        Send a command and optionally wait for its reply.

        Timeouts and socket errors come back as a failed CommandResult.
        A fatal reply ('error auto land', 'error motor stop') raises TelloProtocolError.
        """
        self._notify_command(message)
        try:
            with self._lock:
                result = self._send_locked(message, wait_for_reply, timeout_ms, expected_reply)
        except TelloProtocolError as e:
            self._notify_result(message, CommandResult(ok=False, reply=e.reply, error=str(e)))
            raise
        self._notify_result(message, result)
        return result

    def _send_locked(self, message, wait_for_reply, timeout_ms, expected_reply):
        self.logger.info("Send message: %s", message)
        try:
            sock = self.open()
            self._drain(sock)
            sock.sendall(message.encode("ascii"))
            if not wait_for_reply:
                return CommandResult(ok=True)

            sock.settimeout(timeout_ms / 1000.0)
            try:
                data = sock.recv(RECEIVE_BUFFER_SIZE)
            except socket.timeout:
                self.logger.error("Timeout after %d ms waiting for reply to: %s", timeout_ms, message)
                return CommandResult(ok=False, error_code=TIMEOUT_ERROR_CODE, error="timeout")
        except (OSError, UnicodeEncodeError) as e:
            code = getattr(e, "errno", None)
            self.logger.error("Exception sending '%s': %s", message, e)
            return CommandResult(ok=False, error_code=code, error=str(e))

        reply = data.decode("ascii", errors="replace").strip()
        self.logger.info("Received response: %s", reply)
        return self._classify(message, reply, expected_reply)

    def _classify(self, message, reply, expected_reply):
        lowered = reply.lower()
        if lowered in FATAL_REPLIES:
            self.logger.error("Tello error: %s", reply)
            raise TelloProtocolError(message, reply)
        if lowered == UNKNOWN_COMMAND_REPLY:
            self.logger.error("Error: %s (command: %s)", reply, message)
            return CommandResult(ok=False, reply=reply)
        if expected_reply is None:
            return CommandResult(ok=True, reply=reply)
        return CommandResult(ok=lowered == expected_reply.lower(), reply=reply)

    def _drain(self, sock):
        """Discard late replies left over from an earlier timed-out command"""
        sock.setblocking(False)
        try:
            while True:
                try:
                    stale = sock.recv(RECEIVE_BUFFER_SIZE)
                except (BlockingIOError, InterruptedError):
                    break
                except ConnectionRefusedError:
                    # ICMP from an earlier send; the next send reports its own errors
                    continue
                self.logger.debug("Dropped stale reply: %r", stale)
        finally:
            sock.setblocking(True)

    def _notify_command(self, message):
        for callback in list(self._command_listeners):
            try:
                callback(message)
            except Exception as e:
                self.logger.error("Command listener error: %s", e)

    def _notify_result(self, message, result):
        for callback in list(self._result_listeners):
            try:
                callback(message, result)
            except Exception as e:
                self.logger.error("Result listener error: %s", e)
