"""Local session storage, session-state service and backend-proxy authentication."""
