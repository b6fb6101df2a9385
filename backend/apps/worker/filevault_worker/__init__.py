"""
FileVault background worker.
"""
