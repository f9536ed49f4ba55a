"""Reusable pipeline transform stages.

This module builds stages that map, filter, and rename staged records.
"""
