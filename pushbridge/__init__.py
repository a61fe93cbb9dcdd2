"""pushbridge: push notification dispatch with unified delivery statuses."""

__version__ = "0.1.0"
