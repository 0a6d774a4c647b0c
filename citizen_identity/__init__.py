"""Citizen account registration and login service."""
