"""
miniprobe - Test Suite

This package contains automated tests for the application.

Structure:
- unit/: Unit tests for services, utilities, the collector and the CLI
- integration/: Integration tests for API endpoints
"""

__version__ = "0.1.0"
