"""Device interaction history: who used which device, and when."""

__version__ = "0.1.0"
