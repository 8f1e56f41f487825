"""Shell detection for login-shell command execution."""

import os
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path

# (name, id, command, login args) in preference order
UNIX_CANDIDATES = [
    ("Bash", "bash", "bash", ["--login"]),
    ("Zsh", "zsh", "zsh", ["--login"]),
    ("Sh", "sh", "sh", ["-l"]),
]
WINDOWS_CANDIDATES = [
    ("PS 7", "pwsh", "pwsh.exe", ["-NoLogo", "-Command"]),
    ("PS", "powershell", "powershell.exe", ["-NoLogo", "-Command"]),
    ("CMD", "cmd", "cmd.exe", ["/c"]),
]


@dataclass(frozen=True, slots=True)
class DetectedShell:
    """A shell executable found on this system."""

    id: str
    name: str
    command: str
    login_args: tuple[str, ...] = ()

    def to_command_list(self, command: str) -> list[str]:
        """Argument vector that runs ``command`` through this shell."""
        if sys.platform == "win32":
            return [self.command, *self.login_args, command]
        return [self.command, *self.login_args, "-c", command]


class ShellDetector:
    """Find the login shell used for ``login_shell`` connections."""

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def detect_shells(self) -> list[DetectedShell]:
        """Auto-detect available shells.

        Returns:
            List of detected shells, in preference order.
        """
        candidates = WINDOWS_CANDIDATES if sys.platform == "win32" else UNIX_CANDIDATES
        shells = []
        for name, shell_id, command, args in candidates:
            shell_path = shutil.which(command)
            if shell_path or Path(command).exists():
                shells.append(
                    DetectedShell(
                        id=shell_id,
                        name=name,
                        command=shell_path or command,
                        login_args=tuple(args),
                    )
                )
        return shells

    def get_default_shell_id(self) -> str:
        """The user's ``$SHELL`` when it is a known shell, else the first candidate."""
        if sys.platform == "win32":
            return "pwsh" if shutil.which("pwsh.exe") else WINDOWS_CANDIDATES[-1][1]

        user_shell = Path(self._environ.get("SHELL", "")).name
        known = {shell_id for _, shell_id, _, _ in UNIX_CANDIDATES}
        if user_shell in known:
            return user_shell
        return UNIX_CANDIDATES[0][1]

    def get_default_shell(self) -> DetectedShell | None:
        """Preferred login shell, or None if nothing was found."""
        shells = self.detect_shells()
        default_id = self.get_default_shell_id()

        for shell in shells:
            if shell.id == default_id:
                return shell
        return shells[0] if shells else None
