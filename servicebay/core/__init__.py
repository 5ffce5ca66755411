"""
Service job lifecycle: ownership, storage, status transitions and live updates.
"""
