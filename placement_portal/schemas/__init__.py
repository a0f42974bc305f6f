"""
Schemas module - Request/Response schemas for API endpoints.

Difference from the service records:
- Records (services/eligibility.py): what the evaluator works on
- Schemas: API contract (what client sends/receives)
"""
