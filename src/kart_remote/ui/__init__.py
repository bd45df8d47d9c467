"""UI package for Kart Remote.

Exports:
    ControlWindow: Main window forwarding input to the control core.
"""

from .control_window import ControlWindow

__all__ = ["ControlWindow"]
