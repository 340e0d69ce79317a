"""containerguard - static container security compliance engine."""

__version__ = "1.0.0"
