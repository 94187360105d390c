"""Test suite for Shellmind."""
