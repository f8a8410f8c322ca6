"""
Pydantic schema definitions for the counter record and API payloads.
"""
