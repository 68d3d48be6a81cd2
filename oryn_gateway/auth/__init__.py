"""
Authentication Package

This package handles GitHub sign-in for the Oryn console and the
client-held session that follows it.

Key responsibilities:
- OAuth authorization code flow initiation and callback handling
- CSRF protection of the callback via the oauth_state cookie
- Code-for-token exchange and profile lookup against GitHub
- Signed session token issuance and verification
- Identity check and logout endpoints

Modules:
- routes: Public authentication endpoints (/api/auth/github, /callback, /me, /logout)
- github: Outbound GitHub calls (authorize URL, token exchange, profile)
- session: Session token codec and optional revocation list
- utils: State generation/validation, error-code sanitising, cookie helpers
- errors: Error types with short machine-readable codes

The authentication flow:
1. Browser initiates login via /api/auth/github
2. User authenticates with GitHub
3. GitHub redirects back to /api/auth/callback with code and state
4. Gateway validates state, exchanges the code, fetches the profile
5. Gateway sets the signed session cookie and redirects to the dashboard
"""

from .routes import auth_router

__all__ = [
    "auth_router",
]
