"""ServiceBay: service job tracking for a vehicle workshop."""

__version__ = "1.0.0"
