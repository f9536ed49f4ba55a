"""File loading layer.

This module turns filesystem paths into staged file records.
It backs the store's load-on-miss behaviour.
"""
