"""Facilitator voice and prompt templates."""
