"""RI autopilot: automated Reserved Instance and Savings Plans purchasing."""

__version__ = "0.1.0"
