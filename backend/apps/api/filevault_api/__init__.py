"""
FileVault API application.
"""
