"""
Authentication package for the Flask app.

This package implements Microsoft Entra ID authentication via MSAL (OAuth2
Authorization Code Flow), an optional WebAuthn security-key sign-in, and the
route guards used by the dashboard pages and API routes.
"""
