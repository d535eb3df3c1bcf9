"""scriptsync — keep a folder of automation scripts in sync with a GitHub repository."""

__version__ = "0.3.0"
