"""
wolfgift CLI
"""
