"""graph-user-admin: CLI for Microsoft 365 user, license, and group administration.

Talks to the Microsoft Graph REST API v1.0 using an app registration and the
OAuth2 client-credentials flow.  One token is acquired per invocation and
reused for every request the command makes.
"""

__version__ = "1.0.0"
