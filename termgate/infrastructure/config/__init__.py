"""Configuration infrastructure - loading and detection."""

from .shell_detector import DetectedShell, ShellDetector
from .yaml_loader import YAMLConfigLoader

__all__ = [
    "YAMLConfigLoader",
    "DetectedShell",
    "ShellDetector",
]
