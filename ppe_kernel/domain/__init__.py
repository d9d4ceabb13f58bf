"""Pure domain layer: DTOs, clock, issuance decision core, session workflow."""
