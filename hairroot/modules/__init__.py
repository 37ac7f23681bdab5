"""Game domain modules for the Hair Root engine."""
