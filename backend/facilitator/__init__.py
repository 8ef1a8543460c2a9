"""Guided small-group discussion facilitator for Discord."""
