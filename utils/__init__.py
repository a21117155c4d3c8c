"""
Shared text and similarity helpers.
"""
