"""Concrete cloud services built on the resource shells."""
