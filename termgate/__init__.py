"""termgate - validation, policy and audit gate for web terminal sessions."""

__version__ = "0.1.0"
