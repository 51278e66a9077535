"""
Utils: drawing and session summary helpers.
"""
