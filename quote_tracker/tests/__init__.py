"""Tests for the Quote Tracker service."""
