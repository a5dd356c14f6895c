"""
Core domain types and the group scheduler.
"""
