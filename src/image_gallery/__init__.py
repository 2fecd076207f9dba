"""Image gallery front end: Cognito PKCE login flow, gallery API client and web routes."""

__version__ = "0.1.0"
