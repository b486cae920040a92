"""OverTimer — countdown timer that keeps counting into overrun."""

__version__ = "0.1.0"
