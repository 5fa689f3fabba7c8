"""
Path-prefix reverse proxy and redirector.
"""
