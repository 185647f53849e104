"""scanlink: card-scan order feedback device and live order client."""

__version__ = "0.1.0"
