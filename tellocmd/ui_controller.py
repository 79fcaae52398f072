"""
UI Controller for the keyboard pad window
Handles pygame events, status rendering and the command log
"""

import time
from collections import deque

import pygame

from tellocmd.config import FPS, WINDOW_WIDTH, WINDOW_HEIGHT, COMMAND_LOG_LINES
from tellocmd.input_controller import KeyboardPad, RC_KEYS
from tellocmd.logger import get_logger

KEY_NAMES = {
    pygame.K_UP: "up",
    pygame.K_DOWN: "down",
    pygame.K_LEFT: "left",
    pygame.K_RIGHT: "right",
    pygame.K_w: "w",
    pygame.K_s: "s",
    pygame.K_a: "a",
    pygame.K_d: "d",
}

COMMAND_KEY_EVENTS = {
    pygame.K_t: "t",
    pygame.K_l: "l",
    pygame.K_e: "e",
    pygame.K_p: "p",
    pygame.K_r: "r",
    pygame.K_v: "v",
    pygame.K_c: "c",
    pygame.K_PLUS: "+",
    pygame.K_EQUALS: "+",
    pygame.K_KP_PLUS: "+",
    pygame.K_MINUS: "-",
    pygame.K_KP_MINUS: "-",
}

GREEN = (0, 200, 0)
GRAY = (150, 150, 150)
WHITE = (255, 255, 255)
RED = (220, 0, 0)


class CommandLog:
    """Recent commands and their replies, fed by the command channel listeners"""

    def __init__(self, size=COMMAND_LOG_LINES):
        self.lines = deque(maxlen=size)
        self.count = 0

    def on_command(self, message):
        self.lines.append(f"{self.count} {message}")
        self.count += 1

    def on_result(self, message, result):
        reply = result.reply.strip() if result.reply else ("ok" if result.ok else "failed")
        if self.lines and self.lines[-1].endswith(f" {message}"):
            self.lines[-1] = f"{self.lines[-1]} => {reply}"
        else:
            self.lines.append(f"{message} => {reply}")


def status_lines(client):
    """Text rows for the status panel"""
    if not client.connected:
        return [("Not Connected", GRAY)] + [(f"{label}: ??", GRAY) for label in
                                            ("Height", "Battery", "Flight time", "TOF", "Temperature")]
    temperature = client.temperature
    return [
        ("Flying" if client.flying else "Connected", GREEN),
        (f"Height: {client.state('h', '??')}", WHITE),
        (f"Battery: {client.state('bat', '??')}%", WHITE),
        (f"Flight time: {client.state('time', '??')}", WHITE),
        (f"TOF: {client.state('tof', '??')}", WHITE),
        (f"Temperature: {temperature if temperature is not None else '??'}", WHITE),
        (f"Speed: {client.speed:.0f}", WHITE),
        ("Streaming" if client.live_view or client.recording else "Video off",
         GREEN if client.live_view or client.recording else GRAY),
        ("REC" if client.recording else "", RED),
    ]


def handle_pygame_events(pad):
    """Handle pygame events and return whether to continue"""
    for event in pygame.event.get():
        if event.type == pygame.QUIT:
            return False
        elif event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                return False
            key = COMMAND_KEY_EVENTS.get(event.key)
            if key:
                pad.handle_keyboard_input(key)
    return True


def handle_continuous_keys(pad):
    """Handle continuously pressed movement keys"""
    keys = pygame.key.get_pressed()
    keys_pressed = {name: bool(keys[code]) for code, name in KEY_NAMES.items()}
    if any(keys_pressed[name] for name in RC_KEYS):
        pad.handle_keys(keys_pressed)
    else:
        pad.stop()


def draw(screen, font, client, command_log):
    screen.fill((0, 0, 0))
    y = 10
    for text, color in status_lines(client):
        if text:
            screen.blit(font.render(text, True, color), (10, y))
        y += 22
    y += 10
    for line in command_log.lines:
        screen.blit(font.render(line, True, GRAY), (10, y))
        y += 20
    pygame.display.update()


def main_loop(client, interpreter, logger=None):
    """Main UI loop - handles display and input"""
    logger = logger or get_logger(__name__)
    pad = KeyboardPad(client, interpreter, logger=logger)
    command_log = CommandLog()
    client.channel.add_command_listener(command_log.on_command)
    client.channel.add_result_listener(command_log.on_result)

    pygame.init()
    pygame.display.set_caption("Tello keyboard pad")
    screen = pygame.display.set_mode([WINDOW_WIDTH, WINDOW_HEIGHT])
    font = pygame.font.SysFont(None, 24)

    try:
        while True:
            if not handle_pygame_events(pad):
                break
            handle_continuous_keys(pad)
            draw(screen, font, client, command_log)
            time.sleep(1 / FPS)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error("Main loop error: %s", e)
    finally:
        try:
            pad.stop()
        except Exception as e:
            logger.error("RC stop error: %s", e)
        client.channel.remove_listener(command_log.on_command)
        client.channel.remove_listener(command_log.on_result)
        pygame.quit()
        logger.info("UI loop ended")
