"""Game Server Rotator (GSR).

Single-node supervisor for a fleet of containerized game servers that:
 - rotates scenarios when a server container exits (anti-repeat selection)
 - restarts containers that look hung (stale logs or a hang marker)
 - records what it did in a small sqlite event log

The implementation is intentionally small so it can be audited and explained.
"""
