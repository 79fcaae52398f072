"""
Console front-end
Reads commands from stdin and hands them to the interpreter
"""

from tellocmd.logger import get_logger

PROMPT = "0-takeoff, 1-land, 2-end, run, photo, video, sleep, or just type tello commands? "
SHORTCUTS = {"0": "takeoff", "1": "land"}

HELP_TEXT = """Control Tello drone with command line or text file contains commands. Available commands:
  0 - takeoff
  1 - land
  2 - end and exit
  p[hoto]     - take a picture and save to file (yyyy-mmdd-HHMM-SSfff.jpg)
  v[ideo]     - start/stop video recording and save to file (yyyy-mmdd-HHMM-SSfff.avi)
  s[tream]    - start/stop video streaming
  run <file>  - load and execute commands from file (default: telloCommands.txt)
  sleep <sec> - sleep in seconds (default: 1.0)
  rc <lr> <fb> <ud> <yaw> - RC control, scaled by the current speed
  help        - print this help menu
  or just enter a valid Tello commands like 'up 20', 'left 50', 'cw 90', 'flip r'"""


def print_help():
    print(HELP_TEXT)


def run_console(client, interpreter, input_fn=input, logger=None):
    """Prompt loop; returns when the user quits or input ends"""
    logger = logger or get_logger(__name__)
    while True:
        try:
            line = input_fn(PROMPT)
        except EOFError:
            line = None
        except KeyboardInterrupt:
            print("\nKeyboard interrupt received. Exiting...")
            break

        if line is None:
            break
        line = line.strip()
        if line in ("2", "end"):
            break
        if line in ("?", "help"):
            print_help()
            continue

        if not interpreter.execute(SHORTCUTS.get(line, line)):
            break
        if not interpreter.last_ok:
            logger.error("Command failed: %s", line)

    if client.connected:
        logger.info("Disconnecting from Tello! with battery: %s", client.get_battery())
