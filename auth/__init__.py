"""auth/ -- Token authentication core for Tokengate.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/; configuration is injected by the caller.
api/ imports from auth/, not the other way around.
"""
