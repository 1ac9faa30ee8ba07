"""Tests for cephconverge.recipes."""
