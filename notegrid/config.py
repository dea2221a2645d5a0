"""Configuration constants and defaults for notegrid."""

import os
from pathlib import Path

import click

APP_NAME = "notegrid"

# Key-value layout
STATE_KEY = "notegrid.state"
FIRST_RUN_KEY = "notegrid.first_run_done"
SCHEMA_VERSION = 1

# Credential gate
MIN_PASSWORD_LENGTH = 4
SALT_LENGTH = 16
PBKDF2_ROUNDS = 120000

# Environment
STORE_ENV = "NOTEGRID_STORE"
SHARE_COMMAND_ENV = "NOTEGRID_SHARE_COMMAND"

DEFAULT_GROUP_TITLE = "Untitled group"
UNTITLED_NOTE = "(Untitled)"

WELCOME_TEXT = (
    "This is your first note!\n"
    "Run `notegrid new` to create another one."
)
WELCOME_COLOR = "#64B5F6"


def default_store_path() -> Path:
    """Location of the SQLite file backing the CLI.

    NOTEGRID_STORE wins when set; otherwise the per-user app directory.
    """
    override = os.environ.get(STORE_ENV)
    if override:
        return Path(override).expanduser()
    return Path(click.get_app_dir(APP_NAME)) / "notes.sqlite"
