"""Playback engine services."""
