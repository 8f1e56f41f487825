"""Environment variable sanitization for executed commands."""

import os
from collections.abc import Mapping

# Environment variables to allowlist (safe to pass to the shell)
SAFE_ENV_VARS: frozenset[str] = frozenset(
    {
        # System paths
        "PATH",
        "PATHEXT",
        "SYSTEMROOT",
        "WINDIR",
        "TEMP",
        "TMP",
        "TMPDIR",
        "COMSPEC",
        # User directories
        "HOME",
        "USERPROFILE",
        "HOMEDRIVE",
        "HOMEPATH",
        "LOCALAPPDATA",
        "APPDATA",
        # User identity
        "USER",
        "LOGNAME",
        "USERNAME",
        "SHELL",
        # XDG base directories
        "XDG_CONFIG_HOME",
        "XDG_DATA_HOME",
        "XDG_CACHE_HOME",
        "XDG_RUNTIME_DIR",
        # Locale settings for proper text rendering
        "LANG",
        "LC_ALL",
        "LC_CTYPE",
    }
)

# Environment variables to explicitly block (secrets)
BLOCKED_ENV_VARS: frozenset[str] = frozenset(
    {
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "AZURE_CLIENT_SECRET",
        "GH_TOKEN",
        "GITHUB_TOKEN",
        "GITLAB_TOKEN",
        "NPM_TOKEN",
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "DATABASE_URL",
        "DB_PASSWORD",
        "SECRET_KEY",
        "API_KEY",
        "PRIVATE_KEY",
    }
)

TERM_VALUE = "xterm-256color"
SESSION_TYPE_VALUE = "termgate"


def build_safe_environment(source: Mapping[str, str] | None = None) -> dict[str, str]:
    """Build a sanitized environment for executed commands.

    Uses allowlist approach - only SAFE_ENV_VARS are copied,
    so BLOCKED_ENV_VARS can never be included.

    Args:
        source: Environment to copy from, defaults to ``os.environ``.

    Returns:
        Dictionary of safe environment variables.
    """
    source = os.environ if source is None else source
    safe_env = {var: source[var] for var in SAFE_ENV_VARS if var in source}

    # Set custom variables for audit trail
    safe_env["TERM"] = TERM_VALUE
    safe_env["TERM_SESSION_TYPE"] = SESSION_TYPE_VALUE

    return safe_env
