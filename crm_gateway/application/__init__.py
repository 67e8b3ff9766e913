"""Application layer: DTOs, ports, and the routing/auth services."""
