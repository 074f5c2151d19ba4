"""les - a persistent filename/metadata index served over a local socket."""

__version__ = "0.1.0"
