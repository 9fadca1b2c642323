"""npmrm - find, measure and remove node_modules directories."""

__version__ = "0.1.0"
