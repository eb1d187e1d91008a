"""Renderer, colour ramps and frame hosts."""
