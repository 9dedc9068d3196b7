"""
Services Layer

Bracket engine services that:
- Accept domain inputs (scopes, rosters, standings rows, scores)
- Return domain outputs (dataclasses, models, dicts)
- Do NOT depend on HTTP request/response objects
- Persist only through the repository ports
"""
