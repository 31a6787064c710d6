# presence_guard/lock_action.py
from __future__ import annotations

import asyncio
import logging
import shlex
import subprocess
import sys
from typing import List, Optional, Protocol, Sequence, Tuple

from .errors import LockActionError

logger = logging.getLogger("presence-guard.lock-action")

Command = Tuple[str, List[str]]

MACOS_CGSESSION = "/System/Library/CoreServices/Menu Extras/User.menu/Contents/Resources/CGSession"

WINDOWS_COMMANDS: List[Command] = [
    ("rundll32.exe", ["user32.dll,LockWorkStation"]),
]

MACOS_COMMANDS: List[Command] = [
    (MACOS_CGSESSION, ["-suspend"]),
    (
        "/usr/bin/osascript",
        ["-e", 'tell application "System Events" to keystroke "q" using {control down, command down}'],
    ),
    ("/usr/bin/open", ["-a", "ScreenSaverEngine"]),
    ("/usr/bin/pmset", ["displaysleepnow"]),
]

LINUX_COMMANDS: List[Command] = [
    ("loginctl", ["lock-session"]),
    ("xdg-screensaver", ["lock"]),
    ("gnome-screensaver-command", ["-l"]),
]


class LockAction(Protocol):
    async def invoke(self) -> None: ...


def platform_commands(platform: Optional[str] = None) -> List[Command]:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WINDOWS_COMMANDS
    if platform == "darwin":
        return MACOS_COMMANDS
    if platform.startswith("linux"):
        return LINUX_COMMANDS
    raise LockActionError(f"Unsupported operating system for session lock: {platform}")


def run_and_check(program: str, args: Sequence[str], timeout: float = 10.0) -> None:
    try:
        proc = subprocess.run(
            [program, *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise LockActionError(f"Could not run '{program}': {exc}") from exc

    if proc.returncode == 0:
        return

    stderr = (proc.stderr or "").strip()
    details = stderr or f"Exit code: {proc.returncode}"
    raise LockActionError(f"Command '{program} {' '.join(args)}' failed. {details}")


def try_commands(attempts: Sequence[Command], timeout: float = 10.0) -> None:
    """Run each command in order until one succeeds."""
    errors: List[str] = []
    for program, args in attempts:
        try:
            run_and_check(program, args, timeout=timeout)
            logger.info("Lock command succeeded: %s", program)
            return
        except LockActionError as exc:
            logger.debug("Lock command failed: %s", exc)
            errors.append(str(exc))
    raise LockActionError(" | ".join(errors) or "No lock command configured")


def lock_session(
    custom_command: str = "",
    timeout: float = 10.0,
    platform: Optional[str] = None,
) -> None:
    if custom_command:
        argv = shlex.split(custom_command)
        if not argv:
            raise LockActionError("LOCK_COMMAND is blank")
        run_and_check(argv[0], argv[1:], timeout=timeout)
        return

    platform = platform or sys.platform
    commands = platform_commands(platform)
    if platform.startswith("linux"):
        try:
            try_commands(commands, timeout=timeout)
        except LockActionError as exc:
            raise LockActionError("No compatible command found to lock the session on Linux.") from exc
        return
    if platform == "darwin":
        try:
            try_commands(commands, timeout=timeout)
        except LockActionError as exc:
            raise LockActionError(f"Could not lock the session on macOS. {exc}") from exc
        return
    try_commands(commands, timeout=timeout)


class SystemLockAction:
    """
    Locks the desktop session with the platform's own tooling. Blocking
    subprocess calls run in the default executor.
    """

    def __init__(self, custom_command: str = "", timeout: float = 10.0, platform: Optional[str] = None):
        self.custom_command = custom_command
        self.timeout = timeout
        self.platform = platform

    async def invoke(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lock_session, self.custom_command, self.timeout, self.platform)
