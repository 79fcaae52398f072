"""
Tello Command Client Package
UDP command/telemetry client with a text command interpreter

Package structure:
- config.py: Protocol constants and YAML settings
- logger.py: Logging setup
- protocol.py: Command channel and reply classification
- telemetry.py: Telemetry cache and listener thread
- video.py: External video decoder supervisor
- drone.py: Session state machine (TelloClient)
- interpreter.py: Text command interpreter
- console.py: Console front-end
- input_controller.py: Keyboard pad input handling
- ui_controller.py: Keyboard pad window
- initialization.py: Settings and client setup
"""

__version__ = "1.0.0"
__description__ = "Tello drone text-command client"

PACKAGE_NAME = "tellocmd"
