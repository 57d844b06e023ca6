"""Remote package management for Windows IoT Core devices."""

__version__ = "0.1.0"
