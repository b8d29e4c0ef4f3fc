"""
API Blueprints Package

All HTTP route handlers for the application, organized by resource.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

Accounts:
- auth_routes.py : login, registration, token refresh, password reset
- agents.py      : the authenticated agent's own profile

CRM records:
- clients.py     : clients and their search criteria
- properties.py  : property listings, search and statistics
- images.py      : property image gallery (multipart upload)
- expose.py      : property PDF brochure
- call_notes.py  : logged interactions, follow-ups, AI summaries
- attachments.py : documents attached to properties or clients

Analysis:
- matching.py    : property/client match scoring
- dashboard.py   : pipeline analytics

Compliance:
- gdpr.py        : right-of-access exports (JSON and PDF)

Every route except the public auth endpoints requires a bearer JWT and only
ever touches records owned by the calling agent.
"""
