"""Hand text to the host's share surface or clipboard."""

import logging
import os
import shlex
import shutil
import subprocess

from .config import SHARE_COMMAND_ENV

logger = logging.getLogger(__name__)

CLIPBOARD_COMMANDS = (
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
)


class ShareError(Exception):
    """Base exception for share errors."""
    pass


class ShareUnavailableError(ShareError):
    """No share command or clipboard tool is available."""
    pass


class ShareCommandError(ShareError):
    """The share command failed."""
    pass


def find_share_command() -> list[str] | None:
    """Pick the command text is piped into.

    $NOTEGRID_SHARE_COMMAND wins; otherwise the first clipboard tool on PATH.
    """
    configured = os.environ.get(SHARE_COMMAND_ENV)
    if configured:
        return shlex.split(configured)
    for command in CLIPBOARD_COMMANDS:
        if shutil.which(command[0]):
            return list(command)
    return None


def run_share_command(command: list[str], text: str) -> None:
    """Pipe text into command.

    Raises:
        ShareCommandError: If the command is missing or exits non-zero
    """
    try:
        subprocess.run(
            command,
            input=text,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise ShareCommandError(f"Share command not found: {command[0]}") from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise ShareCommandError(
            f"Share command failed ({e.returncode}): {stderr or 'no output'}"
        ) from e


def share_text(text: str) -> str:
    """Share text and return the name of the command that took it.

    Raises:
        ShareUnavailableError: If nothing can receive the text
        ShareCommandError: If the chosen command fails
    """
    command = find_share_command()
    if command is None:
        raise ShareUnavailableError(
            f"No clipboard tool found. Set {SHARE_COMMAND_ENV} to a command "
            "that reads text from stdin."
        )
    logger.debug("Sharing %d characters via %s", len(text), command[0])
    run_share_command(command, text)
    return command[0]
