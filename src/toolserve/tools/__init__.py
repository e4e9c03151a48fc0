"""Tool framework for builtin servers.

Provides the tool data model, the schema adapter, a per-server registry,
the call orchestrator for bounded outbound work, and the result assembler.
"""
