"""Textual rule tester."""
