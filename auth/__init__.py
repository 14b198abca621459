"""
auth — User authentication module.

Provides:
  • Opaque bearer-token issuing & verification
  • Password hashing (bcrypt)
  • Register / Login / Logout / current-user API routes
  • ``require_user`` FastAPI dependency (the authentication gate)
"""
