"""
Placement Portal
Campus placement backend: student profiles, company job postings and the
eligibility rules deciding who may apply where.

Architecture:
- PostgreSQL (SQLite in tests): students, companies, jobs, applications
- services/eligibility.py: pure eligibility + admission-control policy
- FastAPI routes on top, JWT authentication
"""

__version__ = "1.0.0"
