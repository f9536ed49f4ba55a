"""In-memory staging layer.

This module caches file records, streams them, and commits pipeline
output as a replacement cache with change notifications.
"""
