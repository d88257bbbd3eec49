"""Core utilities: exceptions, logging and money helpers."""
