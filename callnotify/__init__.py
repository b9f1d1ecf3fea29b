"""Voice-agent call webhooks → email call summaries."""

__version__ = "0.1.0"
