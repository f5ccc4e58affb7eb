"""
Storage modules.

This package holds the registered-user directory used by WebAuthn sign-in.
"""
