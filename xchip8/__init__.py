"""A CHIP-8 interpreter with in-memory save states and a pygame front end."""

__version__ = "0.1.0"
__all__ = ["__version__"]