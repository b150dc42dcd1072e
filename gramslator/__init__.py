"""Speech streaming, transcript translation, shared state and text display rendering."""

__version__ = "0.1.0"