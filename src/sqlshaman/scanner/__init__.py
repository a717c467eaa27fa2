"""Marker scanning and normalized model metadata."""
