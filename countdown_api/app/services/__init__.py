"""
Service layer.

Services own application state and business rules.  The API layer
calls into them and translates their exceptions into HTTP responses.
"""
