"""Tests for paysec."""
