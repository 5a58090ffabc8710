"""Utility modules for the todohub sync core."""
