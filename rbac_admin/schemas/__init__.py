"""Pydantic schemas shared by the engine, the repository and callers."""
