"""
Integration test modules

Tests for the DocuSign JWT grant and envelope adapter.
"""
