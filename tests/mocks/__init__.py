"""
Mock modules for unit testing.

This package provides a mock IPhreeqc session so the coupling can be
tested end to end without a PHREEQC installation.
"""

from .mock_phreeqc import MockPhreeqcSession, MockSolution, MockDeck

__all__ = ["MockPhreeqcSession", "MockSolution", "MockDeck"]
