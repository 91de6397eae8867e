"""
Parsing and repair helpers
"""
