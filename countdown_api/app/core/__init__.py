"""
Core infrastructure: settings, logging, exceptions and file storage.
"""
