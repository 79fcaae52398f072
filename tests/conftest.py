import socket
import threading
import time

import pytest

from tellocmd.drone import TelloClient
from tellocmd.protocol import CommandResult, TIMEOUT_ERROR_CODE
from tellocmd.video import VideoSupervisor

DEFAULT_REPLIES = {
    "speed?": "50.0",
    "battery?": "87",
}


class FakeChannel:
    """Stands in for CommandChannel; records sends and answers from a script"""

    def __init__(self, events=None):
        self.events = events if events is not None else []
        self.sent = []
        self.replies = dict(DEFAULT_REPLIES)
        self.closed = False
        self.command_listeners = []
        self.result_listeners = []

    def reply(self, message, reply):
        """reply may be a string, None for a timeout, or an exception to raise"""
        self.replies[message] = reply

    def send(self, message, wait_for_reply=True, timeout_ms=2000, expected_reply="ok"):
        self.sent.append((message, wait_for_reply, timeout_ms, expected_reply))
        self.events.append(("send", message))
        if not wait_for_reply:
            return CommandResult(ok=True)
        reply = self.replies.get(message, "ok")
        if isinstance(reply, Exception):
            raise reply
        if reply is None:
            return CommandResult(ok=False, error_code=TIMEOUT_ERROR_CODE, error="timeout")
        if expected_reply is None:
            return CommandResult(ok=True, reply=reply)
        return CommandResult(ok=reply.lower() == expected_reply.lower(), reply=reply)

    @property
    def messages(self):
        return [s[0] for s in self.sent]

    def add_command_listener(self, callback):
        self.command_listeners.append(callback)

    def add_result_listener(self, callback):
        self.result_listeners.append(callback)

    def remove_listener(self, callback):
        pass

    def close(self):
        self.closed = True
        self.events.append(("close",))


class FakeListener:
    def __init__(self, events=None):
        self.events = events if events is not None else []
        self.running = False

    def start(self):
        self.running = True
        self.events.append(("listener-start",))

    def stop(self):
        self.running = False
        self.events.append(("listener-stop",))


class FakeProcess:
    def __init__(self, args, **kwargs):
        self.args = args
        self.kwargs = kwargs
        self.returncode = None
        self.stdout = None
        self.terminated = False

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.returncode = -9

    def wait(self, timeout=None):
        return self.returncode


class FakePopen:
    """Callable replacement for subprocess.Popen that keeps every process it made"""

    def __init__(self, fail_with=None, process_class=FakeProcess):
        self.processes = []
        self.fail_with = fail_with
        self.process_class = process_class

    def __call__(self, args, **kwargs):
        if self.fail_with is not None:
            raise self.fail_with
        process = self.process_class(args, **kwargs)
        self.processes.append(process)
        return process

    @property
    def alive(self):
        return [p for p in self.processes if p.poll() is None]


class FakeDrone:
    """UDP server on loopback answering commands through a handler"""

    def __init__(self, handler):
        self.handler = handler
        self.received = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(0.05)
        self.port = self.sock.getsockname()[1]
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def _loop(self):
        while not self._stop.is_set():
            try:
                data, addr = self.sock.recvfrom(1024)
            except socket.timeout:
                continue
            except OSError:
                break
            message = data.decode("ascii")
            self.received.append(message)
            reply = self.handler(message)
            if reply is not None:
                self.sock.sendto(reply.encode("ascii"), addr)

    def stop(self):
        self._stop.set()
        self._thread.join(timeout=1)
        self.sock.close()


def wait_for(predicate, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def events():
    return []


@pytest.fixture
def channel(events):
    return FakeChannel(events)


@pytest.fixture
def popen():
    return FakePopen()


@pytest.fixture
def client(channel, events, popen):
    listener = FakeListener(events)
    client = TelloClient(channel=channel, listener=listener)
    client.video = VideoSupervisor(client.stream_on, lambda: client.session.streaming, popen=popen)
    return client


@pytest.fixture
def connected_client(client):
    assert client.connect()
    return client
