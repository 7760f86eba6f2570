"""
CRISISLINE Infrastructure Layer

Storage, database, metrics, monitoring and concurrency primitives.
All storage components implement abstract repository interfaces for testability.
"""
