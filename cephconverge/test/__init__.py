"""Tests for cephconverge."""
