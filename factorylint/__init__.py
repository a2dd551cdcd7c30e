"""
factorylint: find and correct repeated FactoryBot calls in Ruby test suites.
"""

__version__ = "0.1.0"
