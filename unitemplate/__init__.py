"""unitemplate - Unity project bootstrapper."""

__version__ = "0.1.0"
