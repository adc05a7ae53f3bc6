"""Core business logic: provider clients, normalization, scoring and ranking.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
or the database layer; the server and the stores import from here.
"""
