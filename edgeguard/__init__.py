"""edgeguard - request admission gates and edge routes for a web backend."""

__version__ = "0.1.0"
