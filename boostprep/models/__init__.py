"""Pydantic records: run audit metadata and walkthrough experiment results."""
