"""Library management HTTP API: user accounts with JWT login, role checks and book records."""

__version__ = "0.1.0"