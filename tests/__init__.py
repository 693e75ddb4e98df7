"""Tests for the doc relevance engine."""
