"""
Client-side integrations with the production API.
"""
