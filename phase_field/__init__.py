"""Scroll-driven node/edge field that morphs from chaos to lattice order."""

__version__ = "0.1.0"
