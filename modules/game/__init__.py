"""Arcade game objects: spawning and collision."""
