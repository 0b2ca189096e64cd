"""Tests for data skipping."""
