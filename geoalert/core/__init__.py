"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Server URLs, REST paths, notification channel keys
- exceptions: Custom exception hierarchy
"""
