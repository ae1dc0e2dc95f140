"""
StudentJobs Platform
Job board backend connecting students, employers and admins.

Architecture:
- MongoDB: users, KYC submissions, jobs, applications, admin login audit
- FastAPI: REST API consumed by the Next.js frontend
- scripts/: operator tools (KYC sync, admin bootstrap, application repair)
"""

__version__ = "1.0.0"
