"""
Command-line interface for Creative Copycat.
"""
