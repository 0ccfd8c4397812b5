"""
Exceptions raised by the ocean vertical physics.

Numeric kernels report failures through integer codes that callers OR
together; exceptions are reserved for configuration the model cannot run
with.
"""


class ConfigurationError(ValueError):
    """Raised for configuration values the model cannot run with."""
