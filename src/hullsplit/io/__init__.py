"""I/O utilities for hullsplit."""

from .stl import read_stl, write_stl

__all__ = ['read_stl', 'write_stl']
