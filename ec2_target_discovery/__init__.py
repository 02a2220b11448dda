"""EC2 service discovery producing Prometheus-style target labels."""

__version__ = "0.1.0"
