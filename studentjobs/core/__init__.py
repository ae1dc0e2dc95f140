"""
Core module - configuration, security, errors and logging setup.
"""
