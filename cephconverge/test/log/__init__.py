"""Tests for cephconverge.log."""
