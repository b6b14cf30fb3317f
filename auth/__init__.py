"""auth/ -- Session authentication package for Threadline.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/, with one exception:
auth/dependencies.py imports fastapi to expose the Authenticator as
Depends() helpers. api/ imports from auth/, not the other way around.
"""
