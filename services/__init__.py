"""
Service layer for Copydesk.
"""
