"""
supaprobe

Declarative request/response probes against a hosted Supabase project:
table CRUD round trips, authentication checks and user administration,
reported step by step.
"""

__version__ = "1.0.0"
