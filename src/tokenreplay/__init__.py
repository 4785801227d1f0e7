"""
TokenReplay - replay captured API transcripts against a live service

Captured server-generated ids are rewritten with the ids the live service
returns, so dependent steps keep working.
"""

__version__ = '1.0.0'
