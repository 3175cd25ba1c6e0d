"""Pure domain layer of the reminder batch. ZERO I/O."""
