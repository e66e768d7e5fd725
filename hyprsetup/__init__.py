"""
Hyprland Arch Linux Setup
-------------------------

Automates the setup of a complete Hyprland environment on Arch Linux using
an ordered table of idempotent tasks. Tasks can be run all at once
(interactively, one prompt per task) or individually via command-line flags.
"""

import logging

APP_NAME = "Hyprland Setup"
VERSION = "1.0.0"
LOGGER_NAME = "hyprsetup"

# Nothing is written anywhere until a run sets up its log file.
logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())
