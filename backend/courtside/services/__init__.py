"""
Services Layer

Bracket engine services that:
- Accept domain inputs (IDs, sessions, teams)
- Return domain outputs (models, dataclasses, dicts)
- Do NOT depend on HTTP request/response objects
- Own their transaction: commit once on success, roll back on any error
"""
