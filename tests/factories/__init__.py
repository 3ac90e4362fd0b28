"""Test doubles and factories shared across the suite."""
