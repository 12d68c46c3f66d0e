"""avocadoctl — extension lifecycle and HITL mount control for Avocado OS."""

__version__ = "0.1.0"
