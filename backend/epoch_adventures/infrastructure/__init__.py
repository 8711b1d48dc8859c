"""Infrastructure Layer — database sessions, logging, and the Anthropic client.

Invariants:
    - Infrastructure imports only core/errors.py from the domain (error mapping)
    - All external calls wrapped with retry/timeout/error mapping

Design Decisions:
    - Resilient wrappers over raw clients: services never see SDK exceptions
"""
