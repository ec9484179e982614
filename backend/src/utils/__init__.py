"""
Utility modules for the practice portal backend.

This package contains shared helpers used across the application,
including datetime utilities, input validators and database error helpers.
"""
