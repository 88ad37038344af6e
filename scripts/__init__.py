"""
Scripts Package.

Operational scripts for the shadow write harness.

Scripts:
- chaos_gameday: Seeded shadow failure rehearsal with safety checks
"""

# Scripts are meant to be run directly, not imported
