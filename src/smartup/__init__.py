"""smartup - safe dependency upgrades for npm projects."""

__version__ = "1.0.0"
