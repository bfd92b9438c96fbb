"""
Tests for the EVTC analytics pipeline.
"""
