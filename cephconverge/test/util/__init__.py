"""Tests for cephconverge.util."""
