"""
Telemetry cache and listener
The drone pushes 'key:value;key:value;...' datagrams on the state port;
a background thread parses them into a thread-safe cache
"""

import socket
import threading
import time

from tellocmd.config import STATE_HOST, STATE_PORT, STATE_RECEIVE_TIMEOUT, STATE_JOIN_TIMEOUT, RECEIVE_BUFFER_SIZE
from tellocmd.logger import get_logger

STATE_DELIMITER = ";"
STATE_VALUE_DELIMITER = ":"


def parse_state(payload):
    """Split a state datagram into a dict, dropping malformed items"""
    state = {}
    for item in payload.strip().split(STATE_DELIMITER):
        item = item.strip()
        if not item or STATE_VALUE_DELIMITER not in item:
            continue
        key, value = item.split(STATE_VALUE_DELIMITER, 1)
        key = key.strip().lower()
        if not key:
            continue
        state[key] = value.strip()
    return state


class TelemetryCache:
    """Last-seen value per state key; keys are case-insensitive and never removed"""

    def __init__(self):
        self._lock = threading.Lock()
        self._values = {}

    def update(self, values):
        with self._lock:
            for key, value in values.items():
                self._values[key.lower()] = value

    def get(self, key, default=None):
        with self._lock:
            return self._values.get(key.lower(), default)

    def get_int(self, key, default=None):
        """Value as int, or default when missing or not numeric"""
        value = self.get_float(key)
        if value is None:
            return default
        return int(value)

    def get_float(self, key, default=None):
        value = self.get(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            return default

    def snapshot(self):
        with self._lock:
            return dict(self._values)

    def __contains__(self, key):
        with self._lock:
            return key.lower() in self._values

    def __len__(self):
        with self._lock:
            return len(self._values)


class TelemetryListener:
    """Owns the state socket and feeds the cache from a daemon thread"""

    def __init__(self, cache, host=STATE_HOST, port=STATE_PORT,
                 receive_timeout=STATE_RECEIVE_TIMEOUT, logger=None):
        self.cache = cache
        self.host = host
        self.port = port
        self.receive_timeout = receive_timeout
        self.logger = logger or get_logger(__name__)
        self.bound_port = None
        self.datagrams = 0
        self._sock = None
        self._thread = None
        self._stop = threading.Event()

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Bind the state port and start the listener thread"""
        if self.running:
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(self.receive_timeout)
        self._sock = sock
        self.bound_port = sock.getsockname()[1]
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, args=(sock,), daemon=True, name="Telemetry")
        self._thread.start()

    def stop(self):
        """Signal the loop to exit and unblock a pending receive"""
        self._stop.set()
        sock = self._sock
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=STATE_JOIN_TIMEOUT)
        self._thread = None
        self._sock = None

    def handle_datagram(self, data):
        values = parse_state(data.decode("ascii", errors="ignore"))
        if values:
            self.cache.update(values)
        self.datagrams += 1

    def _loop(self, sock):
        self.logger.info("Started telemetry listener on port %s", self.bound_port)
        try:
            while not self._stop.is_set():
                try:
                    data, _ = sock.recvfrom(RECEIVE_BUFFER_SIZE)
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._stop.is_set():
                        break
                    self.logger.debug("Telemetry receive error: %s", e)
                    time.sleep(0.01)
                    continue
                if not data:
                    continue
                try:
                    self.handle_datagram(data)
                except Exception as e:
                    self.logger.debug("Telemetry parse error: %s", e)
        finally:
            sock.close()
            self.logger.info("Stopped telemetry listener")
